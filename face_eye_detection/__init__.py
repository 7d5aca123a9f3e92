"""Live face and eye detection preview package."""

from .camera import CameraSource
from .driver import PreviewDriver
from .errors import InitializationError, PipelineExecutionError, PreviewError
from .imaging import Frame
from .scheduler import SingleSlotScheduler
from .vision import CascadeClassifier, DetectionParams, DetectionPipeline, DetectionRegion, PipelineResult

__all__ = [
    "CameraSource",
    "CascadeClassifier",
    "DetectionParams",
    "DetectionPipeline",
    "DetectionRegion",
    "Frame",
    "InitializationError",
    "PipelineExecutionError",
    "PipelineResult",
    "PreviewDriver",
    "PreviewError",
    "SingleSlotScheduler",
]
