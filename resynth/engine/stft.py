"""Forward and inverse short-time Fourier transforms.

Forward:  frame -> window -> rfft -> (bins, frames) complex matrix
Inverse:  per frame: mirror spectrum -> ifft -> window -> overlap-add,
          then divide by the window overlap energy and fit to target length.

Frames are columns in both directions, matching the magnitude layout the
reconstruction engine receives.
"""

import numpy as np

from .errors import InvalidSpectrogramShape
from .framing import frame_signal
from .window import overlap_norm

# istft calls its checkpoint after roughly this fraction of frames
CHECKPOINT_FRACTION = 0.1


def stft(samples: np.ndarray, window: np.ndarray, hop: int) -> np.ndarray:
    """One-sided STFT of a mono signal.

    Args:
        samples: 1D float array, at least len(window) long
        window: analysis window, its length is the frame size
        hop: hop size in samples

    Returns:
        complex128 array (frame_size // 2 + 1, n_frames)
    """
    frames = frame_signal(samples, len(window), hop)
    frames *= window
    return np.fft.rfft(frames, axis=1).T


def mirror_spectrum(spec: np.ndarray) -> np.ndarray:
    """Rebuild full F-point spectra from one-sided (F/2+1)-bin columns.

    full[F-k] = conj(spec[k]) for 0 < k < F/2. DC and Nyquist are not
    mirrored.
    """
    n_bins = spec.shape[0]
    frame_size = 2 * (n_bins - 1)
    full = np.zeros((frame_size,) + spec.shape[1:], dtype=np.complex128)
    full[:n_bins] = spec
    full[n_bins:] = np.conj(spec[n_bins - 2:0:-1])
    return full


def istft(spec: np.ndarray, window: np.ndarray, hop: int, target_length: int,
          checkpoint=None) -> np.ndarray:
    """Inverse STFT by windowed overlap-add.

    Args:
        spec: complex (frame_size // 2 + 1, n_frames)
        window: synthesis window (same as analysis), length frame_size
        hop: hop size in samples
        target_length: exact output length; trimmed or zero-padded
        checkpoint: optional no-arg callable, invoked every ~10% of frames.
            May raise to abort (cancellation).

    Returns:
        float64 array of length target_length
    """
    frame_size = len(window)
    if spec.ndim != 2:
        raise InvalidSpectrogramShape(f"expected (bins, frames), got shape {spec.shape}")
    n_bins, n_frames = spec.shape
    if n_frames < 1:
        raise InvalidSpectrogramShape("spectrogram has no frames")
    if frame_size % 2 or 2 * (n_bins - 1) != frame_size:
        raise InvalidSpectrogramShape(
            f"{n_bins} bins does not match frame size {frame_size} "
            f"(expected {frame_size // 2 + 1})")

    # Inverse DFT of every frame at once; ifft applies the 1/F scale
    frames = np.fft.ifft(mirror_spectrum(spec), axis=0).real.T
    frames *= window

    output = np.zeros((n_frames - 1) * hop + frame_size, dtype=np.float64)
    chunk = max(1, int(n_frames * CHECKPOINT_FRACTION))
    for t in range(n_frames):
        start = t * hop
        output[start:start + frame_size] += frames[t]
        if checkpoint is not None and (t + 1) % chunk == 0 and t + 1 < n_frames:
            checkpoint()

    output /= overlap_norm(window, hop)

    if len(output) >= target_length:
        return output[:target_length].copy()
    padded = np.zeros(target_length, dtype=np.float64)
    padded[:len(output)] = output
    return padded
