"""Griffin-Lim phase reconstruction.

Recovers a waveform from a magnitude-only spectrogram by alternating
projections:

    1. ISTFT the current complex estimate            -> waveform
    2. STFT the waveform                             -> consistent spectrogram
    3. Keep its phase, re-impose the known magnitude -> new estimate

Step 2 projects onto the set of spectrograms some real signal actually has;
step 3 projects onto the set with the requested magnitude. Error tends to
shrink but is not guaranteed monotonic: this is a heuristic, not an inverse.

States: Initializing (random phase) -> Iterating (K times) -> Finalizing
(one last ISTFT, whose output is returned).
"""

import logging
import math
import threading
import time

import numpy as np

from .analysis import silent_frames
from .errors import (
    InsufficientSamples, InvalidInput, NumericInstability, OperationCancelled,
)
from .params import FRAME_SIZE, ITERATIONS, SR, SCHEMA, iterations_for_quality
from .stft import istft, stft
from .window import hann_window

log = logging.getLogger(__name__)

# Progress milestones, fraction of the whole reconstruction
PROGRESS_INIT = 0.02
PROGRESS_ITER_START = 0.05
PROGRESS_ITER_SPAN = 0.85
PROGRESS_FINAL = 0.9


class CancelToken:
    """Cooperative cancellation flag with an optional deadline.

    Checked at iteration boundaries and inside each ISTFT; a cancelled
    reconstruction raises OperationCancelled and returns nothing.
    """

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self):
        self._event.set()

    def _reason(self) -> str | None:
        if self._event.is_set():
            return "reconstruction cancelled"
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return "reconstruction deadline exceeded"
        return None

    @property
    def cancelled(self) -> bool:
        return self._reason() is not None

    def raise_if_cancelled(self):
        reason = self._reason()
        if reason is not None:
            raise OperationCancelled(reason)


class GriffinLim:
    """Magnitude spectrogram -> waveform via Griffin-Lim.

    Hop is fixed at frame_size // 4 (75% overlap) for the engine's lifetime.
    """

    def __init__(self, frame_size: int = FRAME_SIZE, iterations: int = ITERATIONS,
                 sample_rate: int = SR):
        if frame_size < 4 or frame_size % 2:
            raise InvalidInput(f"frame_size must be an even number >= 4, got {frame_size}")
        if frame_size & (frame_size - 1):
            log.warning("frame_size %d is not a power of two; FFTs will be slower",
                        frame_size)
        if iterations < 0:
            raise InvalidInput(f"iterations must be >= 0, got {iterations}")
        if sample_rate <= 0:
            raise InvalidInput(f"sample_rate must be positive, got {sample_rate}")

        self.frame_size = frame_size
        self.hop_length = frame_size // 4
        self.n_bins = frame_size // 2 + 1
        self.iterations = iterations
        self.sample_rate = sample_rate
        self.window = hann_window(frame_size)

    @classmethod
    def from_params(cls, params: dict) -> "GriffinLim":
        """Build an engine from a params dict (see engine/params.py).

        An explicit "iterations" wins over a "quality" preset.
        """
        p = SCHEMA.validate(params)
        if "iterations" in params:
            iterations = p["iterations"]
        elif "quality" in params:
            iterations = iterations_for_quality(p["quality"])
        else:
            iterations = p["iterations"]
        return cls(frame_size=p["frame_size"], iterations=iterations,
                   sample_rate=p["sample_rate"])

    @classmethod
    def reconstruct_params(cls, magnitude, params: dict, progress_callback=None,
                           cancel: CancelToken | None = None) -> np.ndarray:
        """Build an engine from `params` and run it with the dict's duration and seed."""
        p = SCHEMA.validate(params)
        engine = cls.from_params(params)
        return engine.reconstruct(magnitude, p["duration"],
                                  progress_callback=progress_callback,
                                  seed=p["seed"], cancel=cancel)

    def target_length(self, duration: float) -> int:
        return int(duration * self.sample_rate)

    def validate_magnitude(self, magnitude) -> np.ndarray:
        """Reject malformed magnitude matrices before any work is done.

        Returns a private float64 copy, so the caller's array is never touched.
        """
        magnitude = np.array(magnitude, dtype=np.float64)
        if magnitude.ndim != 2:
            raise InvalidInput(f"magnitude must be 2-D (bins, frames), got shape {magnitude.shape}")
        n_bins, n_frames = magnitude.shape
        if n_bins != self.n_bins:
            raise InvalidInput(
                f"magnitude has {n_bins} bins, frame size {self.frame_size} "
                f"needs {self.n_bins}")
        if n_frames < 1:
            raise InvalidInput("magnitude has no frames")
        if not np.all(np.isfinite(magnitude)):
            raise NumericInstability("magnitude contains NaN or infinity")
        if np.any(magnitude < 0):
            raise InvalidInput("magnitude must be non-negative")
        magnitude.flags.writeable = False
        return magnitude

    def reconstruct(self, magnitude, duration: float, progress_callback=None,
                    seed: int | None = None, cancel: CancelToken | None = None) -> np.ndarray:
        """Estimate phase for `magnitude` and synthesize `duration` seconds of audio.

        Args:
            magnitude: (frame_size // 2 + 1, n_frames) non-negative array
            duration: output length in seconds
            progress_callback: called with a float in [0, 1] at each milestone
            seed: phase generator seed; same seed + input gives identical output
            cancel: CancelToken checked at iteration boundaries

        Returns:
            float64 waveform of int(duration * sample_rate) samples
        """
        magnitude = self.validate_magnitude(magnitude)
        if not math.isfinite(duration) or duration <= 0:
            raise InvalidInput(f"duration must be positive, got {duration}")
        target_length = self.target_length(duration)
        if target_length < 1:
            raise InvalidInput(f"duration {duration}s yields no samples at {self.sample_rate} Hz")
        if self.iterations > 0 and target_length < self.frame_size:
            raise InsufficientSamples(
                f"{duration}s at {self.sample_rate} Hz is {target_length} samples, "
                f"shorter than one frame ({self.frame_size})")

        checkpoint = cancel.raise_if_cancelled if cancel is not None else None
        report = progress_callback or (lambda p: None)
        n_bins, n_frames = magnitude.shape
        log.info("Reconstructing %dx%d spectrogram -> %d samples, %d iterations",
                 n_bins, n_frames, target_length, self.iterations)
        silent = len(silent_frames(magnitude))
        if silent:
            log.debug("%d of %d frames are silent (low confidence)", silent, n_frames)

        # --- Initializing ---
        if checkpoint:
            checkpoint()
        phase = self.initial_phase(magnitude, seed)
        report(PROGRESS_INIT)

        # --- Iterating ---
        for k in range(self.iterations):
            if checkpoint:
                checkpoint()
            progress = PROGRESS_ITER_START + (k / self.iterations) * PROGRESS_ITER_SPAN
            report(progress)
            if k % 10 == 0:
                log.debug("Griffin-Lim iteration %d/%d (%.0f%%)",
                          k + 1, self.iterations, progress * 100)

            self.step(magnitude, phase, target_length, checkpoint)

        # --- Finalizing ---
        if checkpoint:
            checkpoint()
        report(PROGRESS_FINAL)
        audio = self._synthesize(magnitude * np.exp(1j * phase), target_length, checkpoint)
        report(1.0)
        log.info("Reconstruction complete (%d samples)", len(audio))
        return audio

    def _synthesize(self, estimate, target_length, checkpoint):
        waveform = istft(estimate, self.window, self.hop_length, target_length,
                         checkpoint=checkpoint)
        if not np.all(np.isfinite(waveform)):
            raise NumericInstability("waveform diverged (non-finite values)")
        return waveform

    def initial_phase(self, magnitude: np.ndarray, seed: int | None = None) -> np.ndarray:
        """Uniform random phase in [0, 2*pi), one value per magnitude cell.

        The initial estimate is magnitude * exp(1j * phase); the returned
        array is the working phase step() updates.
        """
        rng = np.random.RandomState(seed)
        return rng.uniform(0.0, 2.0 * np.pi, magnitude.shape)

    def step(self, magnitude: np.ndarray, phase: np.ndarray, target_length: int,
             checkpoint=None):
        """One Griffin-Lim iteration. Updates `phase` in place.

        The current estimate is magnitude * exp(1j * phase); it is synthesized,
        re-analysed, and its phase replaced by the re-analysed phase.

        The re-analysed spectrogram's magnitude is discarded; only its phase
        carries forward. Columns the waveform cannot cover (the magnitude has
        more frames than target_length holds) keep their previous phase.
        """
        waveform = self._synthesize(magnitude * np.exp(1j * phase), target_length, checkpoint)
        if checkpoint:
            checkpoint()
        re_estimate = stft(waveform, self.window, self.hop_length)
        del waveform

        n = min(re_estimate.shape[1], phase.shape[1])
        phase[:, :n] = np.angle(re_estimate[:, :n])
        del re_estimate
