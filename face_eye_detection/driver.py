"""Ties the frame source, detection pipeline, scheduler and sink together per display tick."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from face_eye_detection.imaging import Frame
from face_eye_detection.scheduler import SingleSlotScheduler
from face_eye_detection.vision import DetectionPipeline, PipelineResult


class FrameSource(Protocol):
    def start(self) -> Any:
        ...

    def stop(self) -> None:
        ...

    def is_ready(self) -> bool:
        ...

    def current_frame(self) -> Optional[Frame]:
        ...


class PreviewSink(Protocol):
    def present(self, buffer: Any, width: int, height: int) -> None:
        ...


class PreviewDriver:
    """Owns one source, one pipeline, one sink and the scheduler between them."""

    def __init__(
        self,
        source: FrameSource,
        pipeline: DetectionPipeline,
        sink: PreviewSink,
        max_workers: int = 1,
    ):
        self.source = source
        self.pipeline = pipeline
        self.sink = sink
        self.scheduler = SingleSlotScheduler(self._present, max_workers=max_workers)
        self.last_result: Optional[PipelineResult] = None
        self.running = False

    def start(self) -> None:
        self.source.start()
        self.running = True

    def _present(self, result: PipelineResult) -> None:
        self.sink.present(result.rgba, result.width, result.height)
        self.last_result = result

    def tick(self) -> bool:
        """Deliver finished work, then start a job if the slot is free. Never raises."""
        if not self.running:
            return False
        try:
            self.scheduler.deliver()
            if self.scheduler.busy:
                self.scheduler.skip()
                return False
            if not self.source.is_ready():
                return False
            frame = self.source.current_frame()
            if frame is None:
                return False
            return self.scheduler.submit(self.pipeline.process_frame, frame)
        except Exception as exc:  # noqa: BLE001
            logging.exception("Preview tick failed: %s", exc)
            return False

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        self.scheduler.shutdown(wait=False)
        self.source.stop()
