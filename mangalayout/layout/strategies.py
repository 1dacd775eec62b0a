"""Panel discovery strategies, one per layout type."""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence, Tuple

import cv2
import numpy as np

from ..preprocess.binarize import find_runs
from ..raster import Rect
from .classifier import detect_strong_lines, merge_lines
from .context import PageContext
from .refine import ink_density, is_valid_panel
from .types import LayoutType, Panel, PanelType

logger = logging.getLogger(__name__)

GUTTER_PANEL_CONFIDENCE = 0.6
BORDERLESS_PANEL_CONFIDENCE = 0.7
INSET_PANEL_CONFIDENCE = 0.8
WEBTOON_PANEL_CONFIDENCE = 0.9
GRID_PANEL_CONFIDENCE = 0.95

Strategy = Callable[[PageContext], List[Panel]]


def detect_gutters(gray: np.ndarray, white_level: int = 240, ratio: float = 0.8) -> Tuple[np.ndarray, np.ndarray]:
    """Return boolean row and column flags marking mostly-white lines."""

    if gray.size == 0:
        return np.zeros(gray.shape[0], dtype=bool), np.zeros(gray.shape[1], dtype=bool)
    white = gray > white_level
    rows = white.mean(axis=1) >= ratio
    cols = white.mean(axis=0) >= ratio
    return rows, cols


def boundaries_from_gutters(flags: np.ndarray, gap_threshold: int = 15, offset: int = 0) -> List[int]:
    """Cut positions at the middle of every gutter run at least ``gap_threshold`` long.

    The result always starts at ``offset`` and ends at ``offset + len(flags)``.
    """

    extent = int(len(flags))
    cuts = [offset]
    for start, end in find_runs(flags):
        if end - start < gap_threshold:
            continue
        middle = offset + (start + end - 1) // 2
        if cuts[-1] < middle < offset + extent:
            cuts.append(middle)
    cuts.append(offset + extent)
    return cuts


def cells_from_boundaries(rows: Sequence[int], cols: Sequence[int]) -> List[Tuple[int, int, Rect]]:
    """Every cell between consecutive cuts as ``(row, col, rect)``."""

    cells: List[Tuple[int, int, Rect]] = []
    for i, (top, bottom) in enumerate(zip(rows[:-1], rows[1:])):
        for j, (left, right) in enumerate(zip(cols[:-1], cols[1:])):
            if bottom > top and right > left:
                cells.append((i, j, Rect(left, top, right - left, bottom - top)))
    return cells


def segment_webtoon(ctx: PageContext) -> List[Panel]:
    """Split a tall strip at horizontal bands with almost no ink."""

    config = ctx.config
    if ctx.area == 0:
        return []
    row_ink = (255.0 - ctx.gray.astype(np.float64)).mean(axis=1) / 255.0
    gaps = [(start, end) for start, end in find_runs(row_ink < config.webtoon_ink_threshold) if end - start >= config.gap_threshold]

    spans: List[Tuple[int, int]] = []
    cursor = 0
    for start, end in gaps:
        spans.append((cursor, start))
        cursor = end
    spans.append((cursor, ctx.height))

    panels: List[Panel] = []
    for top, bottom in spans:
        if bottom - top <= config.min_panel_dimension:
            continue
        panels.append(
            Panel(
                bounds=Rect(0, top, ctx.width, bottom - top),
                type=PanelType.WEBTOON_PANEL,
                confidence=WEBTOON_PANEL_CONFIDENCE,
            )
        )
    return panels


def _dense_index(values: Sequence[int]) -> Dict[int, int]:
    return {value: index for index, value in enumerate(sorted(set(values)))}


def segment_grid(ctx: PageContext) -> List[Panel]:
    """Cells between merged strong lines, tagged with their grid position."""

    config = ctx.config
    horizontal = merge_lines(
        detect_strong_lines(
            ctx.gray, "horizontal", sensitivity=config.edge_sensitivity, ratio=config.strong_line_ratio
        ),
        config.line_merge_threshold,
    )
    vertical = merge_lines(
        detect_strong_lines(
            ctx.gray, "vertical", sensitivity=config.edge_sensitivity, ratio=config.strong_line_ratio
        ),
        config.line_merge_threshold,
    )

    cells = [
        (i, j, rect)
        for i, j, rect in cells_from_boundaries(horizontal, vertical)
        if rect.width > config.min_panel_dimension and rect.height > config.min_panel_dimension
    ]
    # positions count only the cells that survived, so gutters do not leave holes
    row_index = _dense_index([i for i, _, _ in cells])
    col_index = _dense_index([j for _, j, _ in cells])
    return [
        Panel(
            bounds=rect,
            type=PanelType.GRID_PANEL,
            confidence=GRID_PANEL_CONFIDENCE,
            grid_position=(row_index[i], col_index[j]),
        )
        for i, j, rect in cells
    ]


def _gutter_cells(ctx: PageContext, area: Rect) -> List[Rect]:
    region = ctx.region(area)
    config = ctx.config
    rows, cols = detect_gutters(region, config.white_level, config.gutter_ratio)
    h_cuts = boundaries_from_gutters(rows, config.gap_threshold, offset=area.y)
    v_cuts = boundaries_from_gutters(cols, config.gap_threshold, offset=area.x)
    return [rect for _, _, rect in cells_from_boundaries(h_cuts, v_cuts)]


def detect_borderless_panels(
    ctx: PageContext,
    claimed: Sequence[Panel],
    gutter_rows: np.ndarray,
    gutter_cols: np.ndarray,
) -> List[Panel]:
    """Connected ink regions that no gutter cell accounts for."""

    config = ctx.config
    free = ctx.gray <= config.white_level
    for panel in claimed:
        free[panel.bounds.clamped(ctx.page_rect).to_slice()] = False
    free[gutter_rows, :] = False
    free[:, gutter_cols] = False
    if not free.any():
        return []

    count, labels, stats, _ = cv2.connectedComponentsWithStats(free.astype(np.uint8), connectivity=4)
    min_area = ctx.area * config.min_panel_area_ratio
    panels: List[Panel] = []
    for label in range(1, count):
        x, y, w, h, area = (int(value) for value in stats[label])
        if area <= config.min_component_area or area < min_area:
            continue
        window = (slice(y, y + h), slice(x, x + w))
        values = ctx.gray[window][labels[window] == label].astype(np.float64)
        density = float((255.0 - values).mean() / 255.0)
        panels.append(
            Panel(
                bounds=Rect(x, y, w, h),
                type=PanelType.BORDERLESS,
                confidence=BORDERLESS_PANEL_CONFIDENCE,
                ink_density=density,
            )
        )
    return panels


def split_panel(ctx: PageContext, parent: Panel) -> List[Panel]:
    """Gutter cut inside ``parent``; empty unless it yields two or more inked cells."""

    config = ctx.config
    parent_area = parent.bounds.area
    if parent_area == 0:
        return []
    children: List[Panel] = []
    for rect in _gutter_cells(ctx, parent.bounds):
        ratio = rect.area / float(parent_area)
        if not config.inset_min_ratio <= ratio <= config.inset_max_ratio:
            continue
        density = ink_density(ctx.region(rect), config.white_level)
        if density < config.content_threshold:
            continue
        children.append(
            Panel(
                bounds=rect,
                type=PanelType.INSET,
                confidence=INSET_PANEL_CONFIDENCE,
                ink_density=density,
                parent_id=parent.id,
            )
        )
    return children if len(children) >= 2 else []


def detect_inset_panels(ctx: PageContext, parents: Sequence[Panel], depth: int = 1) -> List[Panel]:
    """Recursively subdivide panels that contain their own gutters."""

    if depth > ctx.config.max_inset_depth:
        return []
    insets: List[Panel] = []
    for parent in parents:
        if ctx.deadline.expired():
            logger.warning("Time budget exhausted during inset detection at depth %d", depth)
            break
        children = split_panel(ctx, parent)
        if not children:
            continue
        insets.extend(children)
        insets.extend(detect_inset_panels(ctx, children, depth + 1))
    return insets


def segment_traditional(ctx: PageContext) -> List[Panel]:
    """Gutter cells, then borderless regions, then insets."""

    config = ctx.config
    rows, cols = detect_gutters(ctx.gray, config.white_level, config.gutter_ratio)
    h_cuts = boundaries_from_gutters(rows, config.gap_threshold)
    v_cuts = boundaries_from_gutters(cols, config.gap_threshold)

    panels: List[Panel] = []
    for _, _, rect in cells_from_boundaries(h_cuts, v_cuts):
        if not is_valid_panel(rect, ctx.area, config):
            continue
        density = ink_density(ctx.region(rect), config.white_level)
        if density < config.content_threshold:
            continue
        panels.append(Panel(bounds=rect, confidence=GUTTER_PANEL_CONFIDENCE, ink_density=density))

    if ctx.deadline.expired():
        logger.warning("Time budget exhausted after gutter detection")
        return panels

    panels.extend(detect_borderless_panels(ctx, panels, rows, cols))
    panels.extend(detect_inset_panels(ctx, panels))
    return panels


STRATEGIES: Dict[LayoutType, Strategy] = {
    LayoutType.TRADITIONAL: segment_traditional,
    LayoutType.GRID: segment_grid,
    LayoutType.WEBTOON: segment_webtoon,
}
