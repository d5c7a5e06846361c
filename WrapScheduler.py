# WrapScheduler.py
# Canvas Wrap: debounced overlay regeneration
#
# - Coalesces change notifications into one regeneration per debounce window
# - internal_mutation() guards programmatic overlay writes against
#   self-triggered notifications (dropped, not queued)
# - Timer backend is injectable: Tk's widget.after/after_cancel fit directly

from __future__ import annotations

import logging
import queue
import threading
from contextlib import contextmanager
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300


# ==========================================================
# Default timer backend
# ==========================================================

class WorkerTimer:
    """
    after(delay_ms, fn) backend. Each timer only enqueues on expiry; a single
    worker thread runs the callbacks, so they never overlap each other.
    """

    def __init__(self, name: str = "wrap-worker"):
        self._q: "queue.Queue[Optional[Callable[[], Any]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._name = name

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._worker_loop, name=self._name, daemon=True)
                self._thread.start()

    def _worker_loop(self) -> None:
        while True:
            fn = self._q.get()
            if fn is None:
                break
            try:
                fn()
            except Exception:
                logger.exception("Scheduled callback failed")

    def after(self, delay_ms: int, fn: Callable[[], Any]) -> threading.Timer:
        self._ensure_worker()
        t = threading.Timer(max(0, delay_ms) / 1000.0, self._q.put, args=(fn,))
        t.daemon = True
        t.start()
        return t

    def cancel(self, handle: threading.Timer) -> None:
        handle.cancel()

    def shutdown(self) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is not None:
            self._q.put(None)
            thread.join(timeout=2.0)


# ==========================================================
# Scheduler
# ==========================================================

class WrapScheduler:
    def __init__(
        self,
        callback: Callable[[], Any],
        *,
        delay_ms: int = DEFAULT_DEBOUNCE_MS,
        after: Optional[Callable[[int, Callable[[], Any]], Any]] = None,
        cancel: Optional[Callable[[Any], Any]] = None,
    ):
        self._callback = callback
        self.delay_ms = int(delay_ms)

        self._own_timer: Optional[WorkerTimer] = None
        if after is None:
            self._own_timer = WorkerTimer()
            after = self._own_timer.after
            cancel = self._own_timer.cancel

        self._after = after
        self._cancel = cancel

        self._state_lock = threading.Lock()
        self.pending: Any = None
        self.suppressed = False

    # --------------------------------------------------

    def notify(self) -> bool:
        """
        Design-change notification. Returns True if a regeneration was scheduled.
        """
        with self._state_lock:
            if self.suppressed or self.pending is not None:
                return False
            self.pending = self._after(self.delay_ms, self._fire)
            return True

    def _fire(self) -> None:
        with self._state_lock:
            self.pending = None
        self._callback()

    @contextmanager
    def internal_mutation(self):
        """Suppresses notifications for the duration of a programmatic write."""
        with self._state_lock:
            previous = self.suppressed
            self.suppressed = True
        try:
            yield self
        finally:
            with self._state_lock:
                self.suppressed = previous

    # --------------------------------------------------

    def cancel(self) -> None:
        with self._state_lock:
            handle = self.pending
            self.pending = None
        if handle is not None and self._cancel is not None:
            try:
                self._cancel(handle)
            except Exception:
                logger.debug("cancel of pending timer failed", exc_info=True)

    def shutdown(self) -> None:
        self.cancel()
        if self._own_timer is not None:
            self._own_timer.shutdown()
