"""Test the background reconstruction worker.

Run: uv run python tests/test_worker.py
"""

import numpy as np
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from resynth.engine.errors import InvalidInput, OperationCancelled
from resynth.engine.griffin_lim import GriffinLim
from resynth.worker import ReconstructionWorker

SR = 8000
N_FFT = 256


def make_worker(iterations=5):
    return ReconstructionWorker(GriffinLim(frame_size=N_FFT, iterations=iterations,
                                           sample_rate=SR))


def test_completes_with_progress():
    print("Test 1: progress messages then done")
    worker = make_worker()
    results = []
    mag = np.random.rand(N_FFT // 2 + 1, 40)
    worker.start(mag, 0.4, seed=0, callback=lambda audio, wav: results.append(wav))
    worker.join(30)
    assert not worker.running

    messages = worker.drain()
    status, data = messages[-1]
    assert status == 'done'
    audio, wav_bytes = data
    assert len(audio) == int(0.4 * SR)
    assert wav_bytes[:4] == b"RIFF"
    assert len(wav_bytes) == 44 + 2 * len(audio)
    assert results == [wav_bytes]

    progress = [d for s, d in messages if s == 'progress']
    assert progress[0] == pytest.approx(0.02)
    assert progress[-1] == pytest.approx(1.0)
    assert progress == sorted(progress)
    assert worker.check_result() is None
    print(f"  {len(progress)} progress messages: OK")


def test_matches_direct_call():
    mag = np.random.rand(N_FFT // 2 + 1, 40)
    worker = make_worker()
    worker.start(mag, 0.4, seed=9)
    worker.join(30)
    status, (audio, _) = worker.drain()[-1]
    direct = GriffinLim(frame_size=N_FFT, iterations=5, sample_rate=SR).reconstruct(mag, 0.4, seed=9)
    assert np.array_equal(audio, direct)


def test_errors_are_forwarded():
    worker = make_worker()
    worker.start(np.ones(10), 0.4)
    worker.join(30)
    status, err = worker.drain()[-1]
    assert status == 'error'
    assert isinstance(err, InvalidInput)


def test_failing_callback_keeps_single_result():
    worker = make_worker()

    def on_done(audio, wav):
        raise RuntimeError("host rejected the audio")

    worker.start(np.random.rand(N_FFT // 2 + 1, 40), 0.4, seed=0, callback=on_done)
    worker.join(30)
    terminal = [s for s, _ in worker.drain() if s != 'progress']
    assert terminal == ['done']


def test_new_job_discards_old_messages():
    worker = make_worker()
    worker.start(np.ones(10), 0.4)
    worker.join(30)
    # The failed job's error is never drained before the next start
    worker.start(np.random.rand(N_FFT // 2 + 1, 40), 0.4, seed=0)
    worker.join(30)
    messages = worker.drain()
    assert [s for s, _ in messages if s != 'progress'] == ['done']
    assert messages[0] == ('progress', pytest.approx(0.02))


def test_deadline_cancels():
    worker = make_worker()
    worker.start(np.random.rand(N_FFT // 2 + 1, 40), 0.4, timeout=0.0)
    worker.join(30)
    messages = worker.drain()
    status, err = messages[-1]
    assert status == 'error'
    assert isinstance(err, OperationCancelled)
    assert all(s != 'done' for s, _ in messages)


def test_cancel():
    print("Test 2: cancel a long reconstruction")
    worker = make_worker(iterations=500)
    worker.start(np.random.rand(N_FFT // 2 + 1, 200), 2.0, seed=0)
    worker.cancel()
    worker.join(60)
    assert not worker.running
    status, err = worker.drain()[-1]
    assert status == 'error'
    assert isinstance(err, OperationCancelled)
    print("  Cancelled: OK")


def test_one_job_at_a_time():
    worker = make_worker(iterations=500)
    worker.start(np.random.rand(N_FFT // 2 + 1, 200), 2.0)
    try:
        with pytest.raises(RuntimeError):
            worker.start(np.random.rand(N_FFT // 2 + 1, 200), 2.0)
    finally:
        worker.cancel()
        worker.join(60)


if __name__ == "__main__":
    test_completes_with_progress()
    test_matches_direct_call()
    test_errors_are_forwarded()
    test_failing_callback_keeps_single_result()
    test_new_job_discards_old_messages()
    test_deadline_cancels()
    test_cancel()
    test_one_job_at_a_time()
    print("\nDone!")
