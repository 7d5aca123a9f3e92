"""Shared fixtures and test doubles for the preview pipeline tests."""

import os
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import cv2
import numpy as np
import pytest

from face_eye_detection.imaging import Frame
from face_eye_detection.vision import DetectionParams, DetectionRegion


class ScriptedDetector:
    """Returns fixed regions and keeps a copy of every image it was asked to scan."""

    def __init__(self, regions=None, gate: Optional[threading.Event] = None, error: Optional[Exception] = None):
        self.regions = list(regions or [])
        self.gate = gate
        self.error = error
        self.inputs: List[np.ndarray] = []
        self.params: List[DetectionParams] = []

    def detect(self, gray, params):
        self.inputs.append(gray.copy())
        self.params.append(params)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return list(self.regions)


class BrightBlobDetector:
    """Stand-in face classifier: reports the bounding box of bright pixels."""

    def __init__(self, threshold: int = 100):
        self.threshold = threshold

    def detect(self, gray, params):
        points = cv2.findNonZero((gray > self.threshold).astype(np.uint8))
        if points is None:
            return []
        x, y, w, h = cv2.boundingRect(points)
        if w < params.min_size or h < params.min_size:
            return []
        return [DetectionRegion(x, y, w, h)]


class RecordingSink:
    def __init__(self, on_present: Optional[Callable[[], None]] = None):
        self.presented = []
        self.threads = []
        self.on_present = on_present

    def present(self, buffer, width, height):
        if self.on_present:
            self.on_present()
        self.presented.append((buffer.copy(), width, height))
        self.threads.append(threading.current_thread())


class FakeSource:
    def __init__(self, frame: Optional[Frame] = None):
        self.frame = frame
        self.ready = frame is not None
        self.started = 0
        self.stopped = 0
        self.served = 0

    def start(self):
        self.started += 1

    def stop(self):
        self.stopped += 1

    def is_ready(self):
        return self.ready

    def current_frame(self):
        self.served += 1
        self.ready = False
        return self.frame


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, step: Optional[Callable[[], object]] = None) -> bool:
    """Poll ``predicate`` (running ``step`` before each check) until true or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if step is not None:
            step()
        if predicate():
            return True
        time.sleep(0.01)
    return False


def make_frame(height: int, width: int, value: int = 0, bottom_up: bool = False) -> Frame:
    pixels = np.full((height, width, 4), value, dtype=np.uint8)
    pixels[:, :, 3] = 255
    return Frame(pixels, bottom_up=bottom_up)


@pytest.fixture(scope="session")
def cascade_dir() -> Path:
    return Path(cv2.data.haarcascades)


@pytest.fixture(scope="session")
def real_pipeline(cascade_dir):
    from face_eye_detection.vision import DetectionPipeline

    return DetectionPipeline.from_cascades(
        cascade_dir / "haarcascade_frontalface_alt.xml",
        cascade_dir / "haarcascade_eye.xml",
        DetectionParams(scale_factor=1.1, min_size=5),
        DetectionParams(scale_factor=1.1, min_size=5),
    )


@pytest.fixture
def black_frame() -> Frame:
    return make_frame(4, 4, value=0)
