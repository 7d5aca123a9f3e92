"""Webcam frame source with a background reader that keeps only the latest frame."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import cv2
import numpy as np

from face_eye_detection.errors import InitializationError
from face_eye_detection.imaging import Frame, bgr_to_frame

DEFAULT_WIDTH, DEFAULT_HEIGHT = 320, 240
READ_RETRY_DELAY_S = 0.05
READER_JOIN_TIMEOUT_S = 1.0


@dataclass
class CameraSource:
    """Wrapper around ``cv2.VideoCapture`` exposing pull-style frame access."""

    device_index: int = 0
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    status: str = "Not started."
    capture: Optional[Any] = None
    _latest: Optional[np.ndarray] = field(default=None, repr=False)
    _fresh: bool = field(default=False, repr=False)
    _running: bool = field(default=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _reader: Optional[threading.Thread] = field(default=None, repr=False)

    def start(self) -> str:
        if self._running:
            return self.status
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            self.status = f"Camera {self.device_index} unavailable."
            raise InitializationError(self.status)
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.capture = capture
        self._running = True
        self._reader = threading.Thread(target=self._read_loop, name="camera-reader", daemon=True)
        self._reader.start()
        self.status = f"Camera {self.device_index} streaming ({self.width}x{self.height})"
        logging.info(self.status)
        return self.status

    def _read_loop(self) -> None:
        capture = self.capture
        try:
            while self._running:
                ok, image = capture.read()
                if not ok or image is None:
                    logging.warning("Failed to grab frame from camera %s", self.device_index)
                    time.sleep(READ_RETRY_DELAY_S)
                    continue
                if image.shape[1] != self.width or image.shape[0] != self.height:
                    image = cv2.resize(image, (self.width, self.height))
                with self._lock:
                    self._latest = image
                    self._fresh = True
        finally:
            # released on the reader thread so it never races a pending read()
            try:
                capture.release()
            except Exception as exc:  # noqa: BLE001
                logging.error("Error releasing camera: %s", exc)

    def is_ready(self) -> bool:
        with self._lock:
            return self._fresh

    def current_frame(self) -> Optional[Frame]:
        """Return the newest frame as RGBA and mark it consumed."""
        with self._lock:
            image = self._latest
            self._fresh = False
        if image is None:
            return None
        return bgr_to_frame(image)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._reader is not None:
            self._reader.join(timeout=READER_JOIN_TIMEOUT_S)
            if self._reader.is_alive():
                logging.warning(
                    "Camera %s reader did not stop within %.1fs; device is released once its read returns",
                    self.device_index,
                    READER_JOIN_TIMEOUT_S,
                )
            self._reader = None
        self.capture = None
        self.status = "Stopped."
        logging.info("Camera %s stopped", self.device_index)
