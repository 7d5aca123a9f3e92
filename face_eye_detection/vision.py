"""
Two-stage Haar-cascade detection: faces in the full frame, then eyes inside
each face, drawn onto a grayscale preview.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

import cv2
import numpy as np

from face_eye_detection.errors import InitializationError, PipelineExecutionError
from face_eye_detection.imaging import Frame, frame_to_working_image, gray_to_rgba, to_grayscale

FACE_CASCADE = "haarcascade_frontalface_alt.xml"
EYE_CASCADE = "haarcascade_eye.xml"
FACTOR_SCALE_FACE = 1.01
FACTOR_SCALE_EYE = 1.01
MIN_SIZE = 5
MIN_NEIGHBORS = 3
ANNOTATION_COLOR = 255
FACE_THICKNESS = 2
EYE_THICKNESS = 1


@dataclass(frozen=True)
class DetectionRegion:
    """Axis-aligned rectangle in image coordinates."""

    x: int
    y: int
    width: int
    height: int

    @property
    def top_left(self) -> tuple[int, int]:
        return self.x, self.y

    @property
    def bottom_right(self) -> tuple[int, int]:
        return self.x + self.width, self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def translated(self, dx: int, dy: int) -> "DetectionRegion":
        return DetectionRegion(self.x + dx, self.y + dy, self.width, self.height)

    def fits_within(self, width: int, height: int) -> bool:
        return self.x >= 0 and self.y >= 0 and self.x + self.width <= width and self.y + self.height <= height

    def iou(self, other: "DetectionRegion") -> float:
        """Intersection over union of two regions."""
        ix = max(0, min(self.x + self.width, other.x + other.width) - max(self.x, other.x))
        iy = max(0, min(self.y + self.height, other.y + other.height) - max(self.y, other.y))
        inter = ix * iy
        union = self.area + other.area - inter
        return inter / union if union else 0.0


@dataclass(frozen=True)
class DetectionParams:
    """Tuning knobs handed to ``detectMultiScale``."""

    scale_factor: float = FACTOR_SCALE_FACE
    min_size: int = MIN_SIZE
    min_neighbors: int = MIN_NEIGHBORS

    def __post_init__(self) -> None:
        if self.scale_factor <= 1.0:
            raise ValueError(f"scale_factor must be > 1.0, got {self.scale_factor}")
        if self.min_size < 0:
            raise ValueError(f"min_size must be >= 0, got {self.min_size}")


class RegionDetector(Protocol):
    def detect(self, gray: np.ndarray, params: DetectionParams) -> List[DetectionRegion]:
        ...


def resolve_cascade_path(name_or_path: Union[str, Path]) -> Path:
    """Return a path as given, or look a bare file name up in OpenCV's bundled cascades."""
    path = Path(name_or_path)
    if path.exists() or path.parent != Path("."):
        return path
    return Path(cv2.data.haarcascades) / path.name


class CascadeClassifier:
    """Read-only wrapper around ``cv2.CascadeClassifier`` loaded once from disk."""

    def __init__(self, cascade_path: Union[str, Path], label: str = "object"):
        self.cascade_path = resolve_cascade_path(cascade_path)
        self.label = label
        self.cascade = cv2.CascadeClassifier()
        try:
            loaded = self.cascade.load(str(self.cascade_path))
        except cv2.error as exc:
            raise InitializationError(f"Could not load {label} cascade from {self.cascade_path}: {exc}") from exc
        if not loaded or self.cascade.empty():
            raise InitializationError(f"Could not load {label} cascade from {self.cascade_path}")
        logging.info("Loaded %s cascade from %s", label, self.cascade_path)

    def detect(self, gray: np.ndarray, params: DetectionParams) -> List[DetectionRegion]:
        if gray.size == 0:
            return []
        found = self.cascade.detectMultiScale(
            gray,
            scaleFactor=params.scale_factor,
            minNeighbors=params.min_neighbors,
            minSize=(params.min_size, params.min_size),
        )
        # detectMultiScale returns an empty tuple when nothing is found
        return [DetectionRegion(int(x), int(y), int(w), int(h)) for (x, y, w, h) in found]


@dataclass
class PipelineResult:
    rgba: np.ndarray
    faces: List[DetectionRegion] = field(default_factory=list)
    eyes: List[DetectionRegion] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def width(self) -> int:
        return int(self.rgba.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgba.shape[0])


class DetectionPipeline:
    """Grayscale conversion, face pass, nested eye pass, annotation and RGBA repack.

    The classifiers are shared read-only; every call works on buffers it owns,
    so one instance may serve any number of sequential jobs from worker threads.
    """

    def __init__(
        self,
        face_detector: RegionDetector,
        eye_detector: RegionDetector,
        face_params: Optional[DetectionParams] = None,
        eye_params: Optional[DetectionParams] = None,
    ):
        self.face_detector = face_detector
        self.eye_detector = eye_detector
        self.face_params = face_params or DetectionParams(scale_factor=FACTOR_SCALE_FACE)
        self.eye_params = eye_params or DetectionParams(scale_factor=FACTOR_SCALE_EYE)

    @classmethod
    def from_cascades(
        cls,
        face_cascade: Union[str, Path] = FACE_CASCADE,
        eye_cascade: Union[str, Path] = EYE_CASCADE,
        face_params: Optional[DetectionParams] = None,
        eye_params: Optional[DetectionParams] = None,
    ) -> "DetectionPipeline":
        """Load both cascades; raises InitializationError if either is unusable."""
        return cls(
            CascadeClassifier(face_cascade, label="face"),
            CascadeClassifier(eye_cascade, label="eye"),
            face_params,
            eye_params,
        )

    def detect(self, gray: np.ndarray) -> tuple[List[DetectionRegion], List[DetectionRegion]]:
        """Return faces and eyes (full-image coordinates) without drawing anything."""
        faces = self.face_detector.detect(gray, self.face_params)
        eyes: List[DetectionRegion] = []
        for face in faces:
            face_view = gray[face.y : face.y + face.height, face.x : face.x + face.width]
            for eye in self.eye_detector.detect(face_view, self.eye_params):
                eyes.append(eye.translated(face.x, face.y))
        return faces, eyes

    def run(self, working_image: np.ndarray) -> PipelineResult:
        """Run every stage on an (H, W, 3) RGB working image."""
        started = time.perf_counter()
        try:
            gray = to_grayscale(working_image)
            faces, eyes = self.detect(gray)
            annotated = annotate(gray, faces, eyes)
            rgba = gray_to_rgba(annotated)
        except Exception as exc:  # noqa: BLE001
            raise PipelineExecutionError(f"Detection failed: {exc}") from exc
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        return PipelineResult(rgba, faces, eyes, elapsed_ms)

    def process_frame(self, frame: Frame) -> PipelineResult:
        return self.run(frame_to_working_image(frame))


def annotate(
    gray: np.ndarray,
    faces: Sequence[DetectionRegion],
    eyes: Sequence[DetectionRegion],
) -> np.ndarray:
    """Draw face outlines and eye boxes onto a copy of ``gray``."""
    annotated = gray.copy()
    for face in faces:
        cv2.rectangle(annotated, face.top_left, face.bottom_right, ANNOTATION_COLOR, FACE_THICKNESS)
    for eye in eyes:
        cv2.rectangle(annotated, eye.top_left, eye.bottom_right, ANNOTATION_COLOR, EYE_THICKNESS)
    return annotated
