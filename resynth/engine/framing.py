"""Split a sample buffer into overlapping fixed-size frames."""

import numpy as np

from .errors import InsufficientSamples, InvalidInput


def frame_count(n_samples: int, frame_size: int, hop: int) -> int:
    """Number of whole frames: 1 + (n - F) // H, or 0 if n < F."""
    if n_samples < frame_size:
        return 0
    return 1 + (n_samples - frame_size) // hop


def frame_signal(samples: np.ndarray, frame_size: int, hop: int) -> np.ndarray:
    """Slice samples into a (n_frames, frame_size) matrix.

    Frame i covers samples[i*hop : i*hop + frame_size]. Frames are copies,
    the input is never modified. Raises InsufficientSamples when the
    buffer is shorter than a single frame.
    """
    if frame_size < 1 or hop < 1:
        raise InvalidInput(f"frame_size and hop must be >= 1 (got {frame_size}, {hop})")
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 1:
        raise InvalidInput(f"expected mono 1-D samples, got shape {samples.shape}")

    n_frames = frame_count(len(samples), frame_size, hop)
    if n_frames == 0:
        raise InsufficientSamples(
            f"{len(samples)} samples is shorter than one frame ({frame_size})")

    frames = np.zeros((n_frames, frame_size), dtype=np.float64)
    for i in range(n_frames):
        start = i * hop
        chunk = samples[start:start + frame_size]
        frames[i, :len(chunk)] = chunk  # zero-padded past the end
    return frames
