"""Single-slot background execution with results handed back on the display thread."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from face_eye_detection.errors import PipelineExecutionError


@dataclass
class SchedulerStats:
    submitted: int = 0
    skipped: int = 0
    delivered: int = 0
    failed: int = 0


class SingleSlotScheduler:
    """Run at most one job at a time on a worker pool.

    ``submit`` is a no-op while a job is outstanding. Finished jobs are posted
    to a queue by the worker; ``deliver`` must be called from the display
    thread, which hands the result to ``on_result`` and only then frees the
    slot.
    """

    def __init__(
        self,
        on_result: Callable[[Any], None],
        max_workers: int = 1,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        self.on_result = on_result
        self.on_error = on_error
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="detection")
        self.stats = SchedulerStats()
        self._completed: queue.Queue[Future] = queue.Queue()
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._closed = False

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._pending is not None

    def submit(self, fn: Callable[..., Any], *args: Any) -> bool:
        """Start ``fn(*args)`` unless a job is already in flight."""
        with self._lock:
            if self._closed:
                return False
            if self._pending is not None:
                self._count_skip()
                return False
            future = self.executor.submit(fn, *args)
            self._pending = future
            self.stats.submitted += 1
        future.add_done_callback(self._completed.put)
        return True

    def skip(self) -> None:
        """Record a tick dropped without submitting because the slot is taken."""
        with self._lock:
            self._count_skip()

    def _count_skip(self) -> None:
        # caller holds self._lock
        self.stats.skipped += 1

    def deliver(self) -> int:
        """Hand finished jobs to their callbacks; returns how many were processed."""
        handled = 0
        while True:
            try:
                future = self._completed.get_nowait()
            except queue.Empty:
                break
            try:
                self._handle(future)
            finally:
                with self._lock:
                    if self._pending is future:
                        self._pending = None
            handled += 1
        return handled

    def _handle(self, future: Future) -> None:
        if self._closed:
            return
        exc = future.exception()
        if exc is not None:
            self.stats.failed += 1
            if not isinstance(exc, PipelineExecutionError):
                exc = PipelineExecutionError(str(exc))
            logging.error("Detection job failed; keeping previous preview: %s", exc, exc_info=exc)
            if self.on_error:
                self.on_error(exc)
            return
        try:
            self.on_result(future.result())
        except Exception as present_exc:  # noqa: BLE001
            self.stats.failed += 1
            logging.exception("Presenting detection result failed: %s", present_exc)
            return
        self.stats.delivered += 1

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting jobs; an in-flight job runs to completion and is discarded."""
        with self._lock:
            self._closed = True
        self.executor.shutdown(wait=wait)
