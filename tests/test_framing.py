"""Test the framer: overlapping fixed-size frames at a fixed hop.

Run: uv run python tests/test_framing.py
"""

import numpy as np
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from resynth.engine.errors import InsufficientSamples, InvalidInput
from resynth.engine.framing import frame_count, frame_signal


def test_frame_count():
    assert frame_count(2048, 2048, 512) == 1
    assert frame_count(2559, 2048, 512) == 1
    assert frame_count(2560, 2048, 512) == 2
    assert frame_count(44100, 2048, 512) == 1 + (44100 - 2048) // 512
    assert frame_count(100, 2048, 512) == 0


def test_frame_contents():
    print("Test 1: frame i = samples[i*H : i*H + F]")
    samples = np.arange(20, dtype=np.float64)
    frames = frame_signal(samples, 8, 4)
    assert frames.shape == (4, 8)
    for i in range(4):
        assert np.array_equal(frames[i], samples[i * 4:i * 4 + 8])
    print("  Frames match slices: OK")


def test_input_not_mutated():
    samples = np.random.randn(100)
    before = samples.copy()
    frames = frame_signal(samples, 16, 4)
    frames *= 0.0
    assert np.array_equal(samples, before)


def test_short_input_rejected():
    with pytest.raises(InsufficientSamples):
        frame_signal(np.zeros(10), 16, 4)
    # InsufficientSamples is an InvalidInput
    with pytest.raises(InvalidInput):
        frame_signal(np.zeros(0), 16, 4)


def test_bad_arguments():
    with pytest.raises(InvalidInput):
        frame_signal(np.zeros((4, 32)), 16, 4)
    with pytest.raises(InvalidInput):
        frame_signal(np.zeros(32), 16, 0)


if __name__ == "__main__":
    test_frame_count()
    test_frame_contents()
    test_input_not_mutated()
    test_short_input_rejected()
    test_bad_arguments()
    print("\nDone!")
