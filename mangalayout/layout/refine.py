"""Post-processing of candidate panels: filtering, overlap merge, typing and content bounds."""
from __future__ import annotations

import dataclasses
from typing import List, Sequence

import numpy as np

from ..raster import Rect
from .context import PageContext, SegmentConfig
from .types import Panel, PanelType


def ink_density(region: np.ndarray, white_level: int = 240) -> float:
    """Share of pixels darker than ``white_level``."""

    if region.size == 0:
        return 0.0
    return float(np.count_nonzero(region < white_level)) / float(region.size)


def is_valid_panel(rect: Rect, page_area: int, config: SegmentConfig) -> bool:
    """Area ratio, aspect ratio and minimum size checks."""

    if rect.width <= 0 or rect.height <= 0 or page_area <= 0:
        return False
    area_ratio = rect.area / float(page_area)
    aspect_ratio = rect.width / float(rect.height)
    return (
        config.min_panel_area_ratio <= area_ratio <= config.max_panel_area_ratio
        and config.aspect_ratio_min <= aspect_ratio <= config.aspect_ratio_max
        and rect.width > config.min_panel_dimension
        and rect.height > config.min_panel_dimension
    )


def filter_panels(panels: Sequence[Panel], page_area: int, config: SegmentConfig) -> List[Panel]:
    return [panel for panel in panels if is_valid_panel(panel.bounds, page_area, config)]


def merge_overlapping(panels: Sequence[Panel], threshold: float = 0.3) -> List[Panel]:
    """Drop panels overlapping a more confident one; survivors keep discovery order."""

    ranked = sorted(enumerate(panels), key=lambda item: -item[1].confidence)
    accepted: List[tuple[int, Panel]] = []
    for index, panel in ranked:
        if any(panel.overlaps(existing, threshold) for _, existing in accepted):
            continue
        accepted.append((index, panel))
    accepted.sort(key=lambda item: item[0])
    return [panel for _, panel in accepted]


def _edge_type(rect: Rect, width: int, height: int, margin: int) -> PanelType | None:
    touches_left = rect.x < margin
    touches_right = rect.right > width - margin
    touches_top = rect.y < margin
    touches_bottom = rect.bottom > height - margin

    if (touches_left and touches_right) or (touches_top and touches_bottom):
        return PanelType.FULL_BLEED
    if sum((touches_left, touches_right, touches_top, touches_bottom)) == 1:
        return PanelType.EDGE_PANEL
    return None


def classify_panel_types(panels: Sequence[Panel], ctx: PageContext) -> List[Panel]:
    """Tag full-bleed and edge panels and measure ink density.

    Only generic ``STANDARD`` panels are re-typed; grid, webtoon, borderless
    and inset panels keep the type their strategy gave them.
    """

    config = ctx.config
    refined: List[Panel] = []
    for panel in panels:
        panel_type = panel.type
        if panel_type is PanelType.STANDARD:
            panel_type = _edge_type(panel.bounds, ctx.width, ctx.height, config.edge_margin) or panel_type
        density = ink_density(ctx.region(panel.bounds), config.white_level)
        refined.append(dataclasses.replace(panel, type=panel_type, ink_density=density))
    return refined


def content_bounds(region: np.ndarray, origin: Rect, white_level: int = 240) -> Rect:
    """Tightest rectangle around non-white pixels; ``origin`` when there are none."""

    rows = np.flatnonzero((region < white_level).any(axis=1))
    if rows.size == 0:
        return origin
    cols = np.flatnonzero((region < white_level).any(axis=0))
    return Rect(
        origin.x + int(cols[0]),
        origin.y + int(rows[0]),
        int(cols[-1] - cols[0] + 1),
        int(rows[-1] - rows[0] + 1),
    )


def compute_content_bounds(panels: Sequence[Panel], ctx: PageContext) -> List[Panel]:
    refined: List[Panel] = []
    for panel in panels:
        clipped = panel.bounds.clamped(ctx.page_rect)
        bounds = content_bounds(ctx.region(clipped), clipped, ctx.config.white_level)
        refined.append(dataclasses.replace(panel, content_bounds=bounds))
    return refined
