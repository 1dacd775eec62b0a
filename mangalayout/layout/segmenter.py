"""Panel segmentation entry point."""
from __future__ import annotations

import dataclasses
import logging
import time
from typing import List

from ..core.deadline import Deadline
from ..errors import InvalidInputError, SegmentationError
from ..preprocess.binarize import to_grayscale
from ..raster import RasterImage, Rect
from .classifier import LayoutClassification, classify_layout
from .context import PageContext, SegmentConfig
from .reading_order import assign_reading_order, link_neighbors
from .refine import classify_panel_types, compute_content_bounds, filter_panels, merge_overlapping
from .strategies import STRATEGIES
from .types import LayoutType, Panel, ReadingDirection, ReadingOrderAlgorithm, SegmentationResult

logger = logging.getLogger(__name__)


def _validate(image: RasterImage) -> None:
    if not isinstance(image, RasterImage):
        raise InvalidInputError(f"Expected a RasterImage, got {type(image).__name__}")
    if image.is_empty:
        raise InvalidInputError(f"Invalid image dimensions: {image.width}x{image.height}")


def _parse_options(
    config: SegmentConfig,
    direction: ReadingDirection | str | None,
    layout: LayoutType | str | None,
) -> tuple[ReadingDirection, ReadingOrderAlgorithm, LayoutType | None]:
    try:
        reading = ReadingDirection.parse(direction if direction is not None else config.reading_direction)
        algorithm = ReadingOrderAlgorithm.parse(config.reading_order_algorithm)
        forced = LayoutType(layout) if layout is not None else None
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    return reading, algorithm, forced


def _analysis_image(image: RasterImage, max_dim: int) -> tuple[RasterImage, float]:
    largest = max(image.width, image.height)
    if max_dim <= 0 or largest <= max_dim:
        return image, 1.0
    scale = max_dim / float(largest)
    width = max(1, int(round(image.width * scale)))
    height = max(1, int(round(image.height * scale)))
    return image.resized(width, height), scale


def _rescale(panels: List[Panel], analysis: RasterImage, image: RasterImage) -> List[Panel]:
    if analysis.size == image.size:
        return panels
    # the analysis sides were rounded separately, so each axis keeps its own factor
    factor_x = image.width / float(analysis.width)
    factor_y = image.height / float(analysis.height)
    page = Rect(0, 0, image.width, image.height)
    rescaled: List[Panel] = []
    for panel in panels:
        bounds = panel.bounds.scaled(factor_x, factor_y).clamped(page)
        content = (
            panel.content_bounds.scaled(factor_x, factor_y).clamped(bounds) if panel.content_bounds else None
        )
        rescaled.append(dataclasses.replace(panel, bounds=bounds, content_bounds=content))
    return rescaled


def segment(
    image: RasterImage,
    config: SegmentConfig | None = None,
    *,
    direction: ReadingDirection | str | None = None,
    layout: LayoutType | str | None = None,
) -> SegmentationResult:
    """Detect the panels of a page and put them in reading order.

    Parameters
    ----------
    image:
        Page raster, usually the ``corrected_image`` of a deskew result.
    config:
        Segmentation thresholds. Defaults to :class:`SegmentConfig`.
    direction:
        Overrides ``config.reading_direction``. Webtoon pages always read
        top to bottom.
    layout:
        Skips classification and runs the strategy for this layout.

    Raises
    ------
    InvalidInputError
        If the image has a zero dimension or an option is not recognised.
    SegmentationError
        On any unexpected failure during analysis.
    """

    config = config or SegmentConfig()
    _validate(image)
    reading, algorithm, forced = _parse_options(config, direction, layout)
    started = time.perf_counter()
    deadline = Deadline(config.max_processing_time_ms, started=started)

    try:
        analysis, scale = _analysis_image(image, config.downsample_max_dim)
        ctx = PageContext(gray=to_grayscale(analysis), config=config, deadline=deadline)

        if forced is not None:
            classification = LayoutClassification(forced)
        else:
            classification = classify_layout(ctx.gray, config)
        logger.debug(
            "Layout %s (grid score %.2f) at scale %.3f",
            classification.layout_type.value,
            classification.grid_score,
            scale,
        )

        panels = STRATEGIES[classification.layout_type](ctx)
        panels = filter_panels(panels, ctx.area, config)
        panels = merge_overlapping(panels, config.overlap_threshold)
        panels = classify_panel_types(panels, ctx)

        if classification.layout_type is LayoutType.WEBTOON:
            reading = ReadingDirection.TTB
        panels = assign_reading_order(panels, reading, algorithm)
        panels = link_neighbors(panels)
        panels = compute_content_bounds(panels, ctx)

        panels = _rescale(panels, analysis, image)
    except InvalidInputError:
        raise
    except Exception as exc:
        logger.exception("Segmentation failed")
        raise SegmentationError(f"Segmentation failed: {exc}") from exc

    if deadline.exhausted:
        logger.warning("Segmentation exceeded %.0f ms, returning partial result", config.max_processing_time_ms)
    elapsed = (time.perf_counter() - started) * 1000.0
    logger.debug("Segmented %d panels in %.1f ms", len(panels), elapsed)
    return SegmentationResult(
        panels=tuple(panels),
        layout_type=classification.layout_type,
        page_bounds=Rect(0, 0, image.width, image.height),
        processing_time_ms=elapsed,
        scale_factor=scale,
        timestamp=time.time() * 1000.0,
        layout_score=classification.grid_score,
        partial=deadline.exhausted,
    )


def crop_panel(image: RasterImage, panel: Panel | Rect, padding: int = 0) -> RasterImage:
    """Copy the pixels of ``panel`` (plus ``padding``) clipped to the page."""

    _validate(image)
    bounds = panel.bounds if isinstance(panel, Panel) else panel
    clipped = bounds.expanded(padding).clamped(Rect(0, 0, image.width, image.height))
    if clipped.area == 0:
        raise InvalidInputError("Panel lies outside the image")
    return RasterImage(image.pixels[clipped.to_slice()].copy())
