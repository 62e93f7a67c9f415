"""
Frame worker.

Runs one SpellingSession on a dedicated thread so every state change of the
session happens on that thread. Frames are never queued behind each other:
while one frame is waiting or being processed, newly submitted frames are
dropped. Editing actions (keyboard, UI) are always queued.

A failing frame or action is reported and skipped; the thread keeps serving
the queue.
"""

import queue
import threading
from typing import Callable, Iterable, Optional

from sign2sound.app.action_dispatcher import ACTIONS
from sign2sound.app.spelling_session import FrameOutcome, SpellingSession


_STOP = object()


class FrameWorker:
    def __init__(self, session: SpellingSession, on_outcome: Optional[Callable[[FrameOutcome], None]] = None):
        self.session = session
        self.on_outcome = on_outcome
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._frame_pending = False
        self._thread: Optional[threading.Thread] = None

        # Statistics
        self.frames_processed = 0
        self.frames_dropped = 0
        self.errors = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name="sign2sound-frames", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def submit_frame(self, landmarks: Optional[Iterable]) -> bool:
        """
        Hand a frame to the worker.

        Returns:
            False when the frame was dropped because another is still pending.
        """
        with self._lock:
            if self._frame_pending:
                self.frames_dropped += 1
                return False
            self._frame_pending = True
        self._queue.put(("frame", landmarks))
        return True

    def submit_action(self, action: str) -> bool:
        """Queue a session editing action by name (e.g. 'backspace')."""
        if action not in ACTIONS:
            print(f"⚠ Unknown session action: {action!r}")
            return False
        self._queue.put(("action", action))
        return True

    def wait_idle(self) -> None:
        self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                kind, data = item
                if kind == "frame":
                    self._process_frame(data)
                else:
                    self._run_action(data)
            finally:
                self._queue.task_done()

    def _process_frame(self, landmarks) -> None:
        try:
            outcome = self.session.process_frame(landmarks)
            self.frames_processed += 1
            if self.on_outcome is not None:
                self.on_outcome(outcome)
        except Exception as e:
            self.errors += 1
            print(f"⚠ Frame processing failed: {e}")
        finally:
            with self._lock:
                self._frame_pending = False

    def _run_action(self, action: str) -> None:
        try:
            getattr(self.session, action)()
        except Exception as e:
            self.errors += 1
            print(f"⚠ Action {action} failed: {e}")
