"""Hann analysis/synthesis window and its overlap-add normalization."""

import numpy as np

from .errors import InvalidInput


def hann_window(n: int) -> np.ndarray:
    """Symmetric Hann window: w[i] = 0.5 * (1 - cos(2*pi*i / (n-1))).

    The returned array is read-only; one window is shared by every frame
    of every STFT/ISTFT call of an engine.
    """
    if n < 2:
        raise InvalidInput(f"window length must be >= 2, got {n}")
    i = np.arange(n, dtype=np.float64)
    window = 0.5 * (1.0 - np.cos(2.0 * np.pi * i / (n - 1)))
    window.flags.writeable = False
    return window


def overlap_norm(window: np.ndarray, hop: int) -> float:
    """Energy of the window overlap, per hop.

    The window is applied twice (analysis and synthesis), so the
    overlap-added signal is scaled by sum(w^2) / hop. ISTFT divides by this.
    """
    if hop < 1:
        raise InvalidInput(f"hop must be >= 1, got {hop}")
    return float(np.sum(window ** 2)) / hop
