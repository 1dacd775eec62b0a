"""Skew detection and rotation correction for scanned or captured pages.

Two independent estimators look at a downsampled copy of the page:

* a Sobel + Hough line vote, which locks onto panel borders and balloon
  edges, and
* a projection-profile search, which aligns text lines (or CJK columns,
  depending on the detected orientation).

By default both run and the more confident one wins.  The estimated angle
follows the OpenCV convention: a positive value means the page content is
rotated counter-clockwise, and correcting it rotates by ``-angle``.
"""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import cv2
import numpy as np

from ..core.batch import ProgressCallback, run_batch
from ..core.deadline import Deadline
from ..errors import ErrorKind, InvalidInputError
from ..raster import RasterImage, rotated_canvas_size
from .binarize import binarize, sobel_magnitude, to_grayscale, variance
from .orientation import TextOrientation, detect_orientation

logger = logging.getLogger(__name__)

EDGE_THRESHOLD = 128
# Lines further than this from horizontal are ignored when prefer_horizontal is set.
NEAR_VERTICAL_LIMIT = 85.0


class SkewMethod(str, Enum):
    HOUGH = "hough"
    PROJECTION = "projection"
    HYBRID = "hybrid"


@dataclass
class DeskewConfig:
    """Configuration container for the deskew stage."""

    max_skew_angle: float = 45.0
    min_skew_angle: float = -45.0
    downsample_width: int = 800
    hough_threshold: int = 100
    hough_angle_step: float = 1.0
    hough_chunk_size: int = 8192
    projection_step: float = 0.5
    prefer_horizontal: bool = True
    orientation_confidence_threshold: float = 0.7
    min_correction_angle: float = 0.5
    min_correction_confidence: float = 0.3
    binarize_window: int = 15
    binarize_bias: float = 10.0
    max_processing_time_ms: float = 5000.0
    fill_color: Tuple[int, int, int, int] = (255, 255, 255, 255)


@dataclass(frozen=True)
class AngleEstimate:
    """Output of a single estimator."""

    angle: float
    confidence: float
    partial: bool = False


@dataclass(frozen=True)
class SkewEstimate:
    """Final skew estimate for a page."""

    angle: float
    confidence: float
    orientation: TextOrientation
    orientation_confidence: float
    method: SkewMethod
    clamped: bool = False
    partial: bool = False
    min_confidence: float = 0.3

    @property
    def degraded(self) -> bool:
        """True when callers should treat the estimate with suspicion."""

        return self.clamped or self.partial or self.confidence <= self.min_confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "angle": self.angle,
            "confidence": self.confidence,
            "orientation": self.orientation.value,
            "orientation_confidence": self.orientation_confidence,
            "method": self.method.value,
            "clamped": self.clamped,
            "partial": self.partial,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class DeskewResult:
    """Corrected page plus the estimate that produced it."""

    estimate: SkewEstimate
    applied: bool
    corrected_image: Optional[RasterImage]
    original_size: Tuple[int, int]
    scale_factor: float
    processing_time_ms: float = 0.0
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def corrected_angle(self) -> float:
        return -self.estimate.angle if self.applied else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "estimate": self.estimate.to_dict(),
            "applied": self.applied,
            "corrected_angle": self.corrected_angle,
            "original_size": {"width": self.original_size[0], "height": self.original_size[1]},
            "scale_factor": self.scale_factor,
            "processing_time_ms": self.processing_time_ms,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


def _normal_to_skew(normals: np.ndarray) -> np.ndarray:
    """Map Hough normal angles (degrees) to the skew of the matching line.

    A near-vertical line has its normal close to 0 and a skew of
    ``-normal``; a near-horizontal line has its normal close to +/-90.
    """

    return np.where(
        np.abs(normals) <= 45.0,
        -normals,
        np.where(normals > 0, 90.0 - normals, -90.0 - normals),
    )


def estimate_skew_hough(
    gray: np.ndarray,
    config: DeskewConfig | None = None,
    deadline: Deadline | None = None,
) -> AngleEstimate:
    """Estimate the skew from the strongest straight line in ``gray``."""

    config = config or DeskewConfig()
    deadline = deadline or Deadline(config.max_processing_time_ms)

    height, width = gray.shape
    edges = sobel_magnitude(gray)
    ys, xs = np.nonzero(edges > EDGE_THRESHOLD)
    if xs.size == 0:
        return AngleEstimate(0.0, 0.0)

    step = float(config.hough_angle_step)
    if step <= 0:
        raise ValueError("hough_angle_step must be positive")
    normals = np.arange(-90.0, 90.0 - 1e-9, step)
    thetas = np.deg2rad(normals)
    cos_t = np.cos(thetas)
    sin_t = np.sin(thetas)

    diagonal = int(math.ceil(math.hypot(width, height)))
    rho_bins = 2 * diagonal
    offsets = np.arange(normals.size, dtype=np.int64) * rho_bins
    accumulator = np.zeros(normals.size * rho_bins, dtype=np.int64)

    partial = False
    chunk = max(1, int(config.hough_chunk_size))
    for start in range(0, xs.size, chunk):
        x = xs[start : start + chunk, None].astype(np.float64)
        y = ys[start : start + chunk, None].astype(np.float64)
        rho_index = np.floor(x * cos_t + y * sin_t + diagonal).astype(np.int64)
        valid = (rho_index >= 0) & (rho_index < rho_bins)
        flat = (rho_index + offsets)[valid]
        accumulator += np.bincount(flat, minlength=accumulator.size)
        if start + chunk < xs.size and deadline.expired():
            logger.warning(
                "Hough voting stopped after %d of %d edge pixels (time budget exhausted)",
                start + chunk,
                xs.size,
            )
            partial = True
            break

    votes = accumulator.reshape(normals.size, rho_bins).max(axis=1)
    if config.prefer_horizontal:
        line_angle_from_horizontal = 90.0 - np.abs(normals)
        votes = np.where(line_angle_from_horizontal > NEAR_VERTICAL_LIMIT, -1, votes)

    best = int(np.argmax(votes))
    max_votes = int(votes[best])
    if max_votes <= 0:
        return AngleEstimate(0.0, 0.0, partial)

    angle = float(_normal_to_skew(normals[best : best + 1])[0])
    confidence = min(1.0, max_votes / (config.hough_threshold * 2.0))
    return AngleEstimate(angle, confidence, partial)


def _candidate_angles(minimum: float, maximum: float, step: float) -> np.ndarray:
    """Candidate angles ordered by distance from zero."""

    if step <= 0:
        raise ValueError("projection_step must be positive")
    count = int(math.floor((maximum - minimum) / step + 1e-9)) + 1
    angles = np.round(minimum + np.arange(count) * step, 6)
    order = np.lexsort((angles, np.abs(angles)))
    return angles[order]


def projection_variance(
    xs: np.ndarray,
    ys: np.ndarray,
    angle: float,
    orientation: TextOrientation,
) -> float:
    """Variance of the ink histogram projected across the text direction."""

    radians = math.radians(angle)
    cos_a = math.cos(radians)
    sin_a = math.sin(radians)
    if orientation is TextOrientation.VERTICAL:
        projected = np.rint(xs * cos_a - ys * sin_a)
    else:
        projected = np.rint(xs * sin_a + ys * cos_a)
    bins = projected.astype(np.int64)
    histogram = np.bincount(bins - bins.min())
    if histogram.size < 2:
        return 0.0
    return variance(histogram)


def estimate_skew_projection(
    mask: np.ndarray,
    orientation: TextOrientation = TextOrientation.HORIZONTAL,
    config: DeskewConfig | None = None,
    deadline: Deadline | None = None,
) -> AngleEstimate:
    """Search the angle that gives the sharpest projection profile."""

    config = config or DeskewConfig()
    deadline = deadline or Deadline(config.max_processing_time_ms)

    height, width = mask.shape
    ys, xs = np.nonzero(mask)
    if xs.size == 0:
        return AngleEstimate(0.0, 0.0)
    xs = xs.astype(np.float64)
    ys = ys.astype(np.float64)

    best_angle = 0.0
    best_variance = 0.0
    partial = False
    angles = _candidate_angles(config.min_skew_angle, config.max_skew_angle, config.projection_step)
    for position, angle in enumerate(angles):
        score = projection_variance(xs, ys, float(angle), orientation)
        if score > best_variance:
            best_variance = score
            best_angle = float(angle)
        if position + 1 < angles.size and deadline.expired():
            logger.warning(
                "Projection search stopped after %d of %d angles (time budget exhausted)",
                position + 1,
                angles.size,
            )
            partial = True
            break

    confidence = min(1.0, best_variance / (width * height * 0.1))
    return AngleEstimate(best_angle, confidence, partial)


def rotate_image(
    image: RasterImage,
    angle: float,
    fill: Tuple[int, int, int, int] = (255, 255, 255, 255),
) -> RasterImage:
    """Rotate ``image`` by ``angle`` degrees (counter-clockwise) without clipping corners."""

    width, height = image.size
    new_width, new_height = rotated_canvas_size(width, height, angle)
    center = ((width - 1) / 2.0, (height - 1) / 2.0)
    matrix = cv2.getRotationMatrix2D(center, angle, 1.0)
    matrix[0, 2] += (new_width - 1) / 2.0 - center[0]
    matrix[1, 2] += (new_height - 1) / 2.0 - center[1]
    rotated = cv2.warpAffine(
        image.pixels,
        matrix,
        (new_width, new_height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=tuple(int(channel) for channel in fill),
    )
    return RasterImage(rotated)


def _coerce_method(method: SkewMethod | str | None) -> SkewMethod:
    if method is None:
        return SkewMethod.HYBRID
    if isinstance(method, SkewMethod):
        return method
    try:
        return SkewMethod(str(method).strip().lower())
    except ValueError as exc:
        raise InvalidInputError(f"Unknown skew method: {method}") from exc


def _validate_dimensions(image: RasterImage) -> None:
    if not isinstance(image, RasterImage):
        raise InvalidInputError(f"Expected a RasterImage, got {type(image).__name__}")
    if image.is_empty:
        raise InvalidInputError(f"Invalid image dimensions: {image.width}x{image.height}")


def _error_result(
    image: Any,
    exc: Exception,
    kind: ErrorKind,
    method: SkewMethod,
    started: float,
) -> DeskewResult:
    original = image if isinstance(image, RasterImage) else None
    size = original.size if original is not None else (0, 0)
    estimate = SkewEstimate(
        angle=0.0,
        confidence=0.0,
        orientation=TextOrientation.MIXED,
        orientation_confidence=0.0,
        method=method,
    )
    return DeskewResult(
        estimate=estimate,
        applied=False,
        corrected_image=original,
        original_size=size,
        scale_factor=1.0,
        processing_time_ms=(time.perf_counter() - started) * 1000.0,
        error=str(exc) or type(exc).__name__,
        error_kind=kind,
    )


def deskew(
    image: RasterImage,
    config: DeskewConfig | None = None,
    *,
    method: SkewMethod | str | None = None,
) -> DeskewResult:
    """Detect and correct the skew of ``image``.

    The function never raises for a bad page: invalid dimensions and
    unexpected failures are returned as a :class:`DeskewResult` whose
    ``error`` is set and whose ``corrected_image`` is the untouched input.
    """

    config = config or DeskewConfig()
    started = time.perf_counter()
    deadline = Deadline(config.max_processing_time_ms, started=started)
    selected = SkewMethod.HYBRID

    try:
        selected = _coerce_method(method)
        _validate_dimensions(image)
        width, height = image.size

        scale = min(1.0, config.downsample_width / float(width))
        analysis = image
        if scale < 1.0:
            analysis = image.resized(max(1, int(width * scale)), max(1, int(height * scale)))

        gray = to_grayscale(analysis)
        mask = binarize(gray, window_size=config.binarize_window, bias=config.binarize_bias)
        orientation = detect_orientation(mask, config.orientation_confidence_threshold)

        if selected is SkewMethod.HOUGH:
            found = estimate_skew_hough(gray, config, deadline)
        elif selected is SkewMethod.PROJECTION:
            found = estimate_skew_projection(mask, orientation.orientation, config, deadline)
        else:
            hough = estimate_skew_hough(gray, config, deadline)
            projection = estimate_skew_projection(mask, orientation.orientation, config, deadline)
            found = hough if hough.confidence > projection.confidence else projection
            logger.debug(
                "Hybrid skew: hough=%.2f (%.2f) projection=%.2f (%.2f)",
                hough.angle,
                hough.confidence,
                projection.angle,
                projection.confidence,
            )
            found = AngleEstimate(found.angle, found.confidence, hough.partial or projection.partial)

        angle = found.angle
        confidence = found.confidence
        if not (math.isfinite(angle) and math.isfinite(confidence)):
            raise FloatingPointError(f"Non-finite skew estimate: angle={angle}, confidence={confidence}")

        clamped = False
        if angle > config.max_skew_angle or angle < config.min_skew_angle:
            logger.warning("Detected skew angle %.2f exceeds the allowed range, clamping", angle)
            angle = config.max_skew_angle if angle > 0 else config.min_skew_angle
            confidence *= 0.5
            clamped = True

        estimate = SkewEstimate(
            angle=angle,
            confidence=confidence,
            orientation=orientation.orientation,
            orientation_confidence=orientation.confidence,
            method=selected,
            clamped=clamped,
            partial=found.partial,
            min_confidence=config.min_correction_confidence,
        )

        applied = abs(angle) > config.min_correction_angle and confidence > config.min_correction_confidence
        corrected = rotate_image(image, -angle, config.fill_color) if applied else image

        elapsed = (time.perf_counter() - started) * 1000.0
        logger.debug("Deskew finished in %.1f ms (angle=%.2f, applied=%s)", elapsed, angle, applied)
        return DeskewResult(
            estimate=estimate,
            applied=applied,
            corrected_image=corrected,
            original_size=(width, height),
            scale_factor=scale,
            processing_time_ms=elapsed,
        )
    except InvalidInputError as exc:
        logger.warning("Deskew rejected the input: %s", exc)
        return _error_result(image, exc, ErrorKind.INVALID_INPUT, selected, started)
    except Exception as exc:
        logger.exception("Deskew failed")
        return _error_result(image, exc, ErrorKind.INTERNAL, selected, started)


def deskew_batch(
    images: Iterable[RasterImage],
    config: DeskewConfig | None = None,
    *,
    method: SkewMethod | str | None = None,
    concurrency: int | None = 1,
    on_progress: ProgressCallback | None = None,
) -> List[DeskewResult]:
    """Deskew several pages; one result per input, in input order."""

    pages = list(images)
    outcomes = run_batch(
        lambda page: deskew(page, config, method=method),
        pages,
        concurrency=concurrency,
        on_progress=on_progress,
    )
    results: List[DeskewResult] = []
    for outcome in outcomes:
        if outcome.ok:
            results.append(outcome.result)
        else:
            results.append(
                _error_result(
                    pages[outcome.index],
                    outcome.error,
                    ErrorKind.INTERNAL,
                    _coerce_method(method),
                    time.perf_counter(),
                )
            )
    return results
