"""Spectrogram analysis helpers: magnitude of raw audio, reconstruction quality."""

import numpy as np

from .errors import InvalidInput
from .stft import stft
from .window import hann_window


def magnitude_from_audio(samples: np.ndarray, frame_size: int = 2048) -> np.ndarray:
    """Magnitude spectrogram of mono audio, on the engine's own grid.

    Uses the same Hann window and frame_size // 4 hop as GriffinLim, so the
    result can be fed straight back into reconstruct(). Raises
    InsufficientSamples if the audio is shorter than one frame.
    """
    window = hann_window(frame_size)
    return np.abs(stft(samples, window, frame_size // 4))


def spectral_convergence(magnitude: np.ndarray, audio: np.ndarray,
                         frame_size: int = 2048) -> float:
    """||S - |STFT(x)|||_F / ||S||_F over the frames both cover.

    0 means the waveform's spectrogram matches the target exactly.
    """
    produced = magnitude_from_audio(audio, frame_size)
    n = min(produced.shape[1], magnitude.shape[1])
    if produced.shape[0] != magnitude.shape[0]:
        raise InvalidInput(
            f"bin mismatch: target has {magnitude.shape[0]}, audio gives {produced.shape[0]}")
    target = magnitude[:, :n]
    denom = np.linalg.norm(target)
    if denom == 0:
        return 0.0 if np.linalg.norm(produced[:, :n]) == 0 else float("inf")
    return float(np.linalg.norm(target - produced[:, :n]) / denom)


def silent_frames(magnitude: np.ndarray) -> np.ndarray:
    """Indices of all-zero columns. Their phase is arbitrary (angle(0) == 0)."""
    return np.flatnonzero(~np.asarray(magnitude).any(axis=0))
