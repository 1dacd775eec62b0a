"""Raster containers shared by the deskew and segmentation stages.

A :class:`RasterImage` wraps a row-major RGBA sample grid as produced by the
host's image decoder (see :mod:`mangalayout.io.ingest`).  A :class:`Rect`
describes an axis-aligned region of such a grid in integer pixel units.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Tuple

import cv2
import numpy as np

from .errors import InvalidInputError


@dataclass(frozen=True)
class RasterImage:
    """Immutable ``(height, width, 4)`` uint8 RGBA grid."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        if not isinstance(self.pixels, np.ndarray):
            raise InvalidInputError("RasterImage expects a numpy array")
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise InvalidInputError(
                f"RasterImage expects a (height, width, 4) grid, got shape {self.pixels.shape}"
            )
        if self.pixels.dtype != np.uint8:
            raise InvalidInputError("RasterImage samples must be uint8")

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Build an RGBA raster from a grayscale, RGB or RGBA array."""

        data = np.asarray(array)
        if data.dtype != np.uint8:
            data = np.clip(data, 0, 255).astype(np.uint8)

        if data.ndim == 2:
            alpha = np.full(data.shape, 255, dtype=np.uint8)
            return cls(np.dstack((data, data, data, alpha)))
        if data.ndim != 3:
            raise InvalidInputError(f"Unsupported image array with {data.ndim} dimensions")

        channels = data.shape[2]
        if channels == 4:
            return cls(np.ascontiguousarray(data).copy())
        if channels == 3:
            alpha = np.full(data.shape[:2], 255, dtype=np.uint8)
            return cls(np.dstack((data, alpha)))
        if channels == 1:
            return cls.from_array(data[:, :, 0])
        raise InvalidInputError(f"Unsupported channel count: {channels}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def resized(self, width: int, height: int) -> "RasterImage":
        """Return a resampled copy; area interpolation when shrinking."""

        if width <= 0 or height <= 0:
            raise InvalidInputError("Target dimensions must be positive")
        if (width, height) == self.size:
            return self
        shrinking = width < self.width or height < self.height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        resized = cv2.resize(self.pixels, (width, height), interpolation=interpolation)
        return RasterImage(resized)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle ``(x, y, width, height)``."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def to_slice(self) -> tuple[slice, slice]:
        return slice(self.y, self.bottom), slice(self.x, self.right)

    def contains_point(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom

    def contains(self, other: "Rect") -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def intersection_area(self, other: "Rect") -> int:
        x_overlap = max(0, min(self.right, other.right) - max(self.x, other.x))
        y_overlap = max(0, min(self.bottom, other.bottom) - max(self.y, other.y))
        return x_overlap * y_overlap

    def overlap_ratio(self, other: "Rect") -> float:
        """Intersection area divided by the smaller of the two areas."""

        smaller = min(self.area, other.area)
        if smaller <= 0:
            return 0.0
        return self.intersection_area(other) / smaller

    def expanded(self, margin: int) -> "Rect":
        return Rect(self.x - margin, self.y - margin, self.width + 2 * margin, self.height + 2 * margin)

    def scaled(self, factor: float, factor_y: float | None = None) -> "Rect":
        """Scale the edges; ``factor_y`` defaults to ``factor``."""

        factor_y = factor if factor_y is None else factor_y
        left = int(round(self.x * factor))
        top = int(round(self.y * factor_y))
        right = int(round(self.right * factor))
        bottom = int(round(self.bottom * factor_y))
        return Rect(left, top, right - left, bottom - top)

    def clamped(self, bounds: "Rect") -> "Rect":
        left = min(max(self.x, bounds.x), bounds.right)
        top = min(max(self.y, bounds.y), bounds.bottom)
        right = max(min(self.right, bounds.right), left)
        bottom = max(min(self.bottom, bounds.bottom), top)
        return Rect(left, top, right - left, bottom - top)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def rotated_canvas_size(width: int, height: int, angle: float) -> Tuple[int, int]:
    """Size of the canvas that holds a ``width`` x ``height`` grid rotated by ``angle`` degrees."""

    radians = math.radians(angle)
    cos = abs(math.cos(radians))
    sin = abs(math.sin(radians))
    # round away float noise before ceil so that 0 degrees keeps the original size
    new_width = math.ceil(round(width * cos + height * sin, 6))
    new_height = math.ceil(round(width * sin + height * cos, 6))
    return int(new_width), int(new_height)
