"""Error types raised by the preview pipeline."""

from __future__ import annotations


class PreviewError(Exception):
    """Base class for preview failures."""


class InitializationError(PreviewError):
    """A required resource (camera, display, cascade) could not be set up."""


class PipelineExecutionError(PreviewError):
    """Processing a single frame failed."""
