"""Exceptions raised by the page layout analysis engine."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category attached to error results returned instead of raised."""

    INVALID_INPUT = "invalid_input"
    INTERNAL = "internal"


class LayoutAnalysisError(RuntimeError):
    """Base class for every error raised by the engine."""


class InvalidInputError(LayoutAnalysisError, ValueError):
    """Raised when an image has missing, zero or negative dimensions."""


class SegmentationError(LayoutAnalysisError):
    """Raised when panel segmentation fails for an unexpected reason."""
