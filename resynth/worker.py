"""ReconstructionWorker: runs Griffin-Lim off the UI thread.

The host polls check_result() from its own loop (e.g. a Tk `after` timer);
progress, completion and errors arrive as (status, data) messages.
"""

import logging
import queue
import threading

import numpy as np

from resynth.audio.wav import encode_wav
from resynth.engine.griffin_lim import CancelToken, GriffinLim

log = logging.getLogger(__name__)


class ReconstructionWorker:
    """Background reconstruction with progress reporting and cancellation.

    Messages put on the queue:
        ('progress', float)   fraction in [0, 1]
        ('done', (audio, wav_bytes))
        ('error', exception)  including OperationCancelled
    """

    def __init__(self, engine: GriffinLim):
        self.engine = engine
        self._queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._cancel: CancelToken | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, magnitude: np.ndarray, duration: float, seed: int | None = None,
              timeout: float | None = None, callback=None):
        """Start reconstruction in a daemon thread.

        callback(audio, wav_bytes) is called from the worker thread on success,
        after the 'done' message is queued; its errors are logged, not queued.
        Messages left over from a previous job are discarded.
        """
        if self.running:
            raise RuntimeError("reconstruction already in progress")
        magnitude = np.array(magnitude, dtype=np.float64)
        self._cancel = CancelToken(timeout=timeout)
        cancel = self._cancel
        # Fresh queue per job
        self._queue = messages = queue.Queue()

        def _do_render():
            try:
                audio = self.engine.reconstruct(
                    magnitude, duration,
                    progress_callback=lambda p: messages.put(('progress', p)),
                    seed=seed, cancel=cancel)
                wav_bytes = encode_wav(audio, self.engine.sample_rate)
            except Exception as e:
                log.warning("Reconstruction failed: %s", e)
                messages.put(('error', e))
                return
            messages.put(('done', (audio, wav_bytes)))
            if callback:
                try:
                    callback(audio, wav_bytes)
                except Exception:
                    log.exception("Reconstruction callback failed")

        self._thread = threading.Thread(target=_do_render, daemon=True)
        self._thread.start()

    def cancel(self):
        """Request cancellation; takes effect at the next iteration boundary."""
        if self._cancel is not None:
            self._cancel.cancel()

    def join(self, timeout: float | None = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def check_result(self):
        """Non-blocking poll. Returns the next (status, data) message or None."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list:
        """All pending messages, oldest first."""
        messages = []
        while True:
            msg = self.check_result()
            if msg is None:
                return messages
            messages.append(msg)
