"""Panel segmentation: layout classification, boundary strategies and reading order."""

from .classifier import LayoutClassification, classify_layout, detect_strong_lines, grid_score, merge_lines
from .context import PageContext, SegmentConfig
from .reading_order import assign_reading_order, group_columns, group_rows, link_neighbors
from .refine import (
    classify_panel_types,
    compute_content_bounds,
    filter_panels,
    ink_density,
    is_valid_panel,
    merge_overlapping,
)
from .segmenter import crop_panel, segment
from .strategies import (
    STRATEGIES,
    boundaries_from_gutters,
    detect_borderless_panels,
    detect_gutters,
    detect_inset_panels,
    segment_grid,
    segment_traditional,
    segment_webtoon,
)
from .types import (
    LayoutType,
    Panel,
    PanelNeighbors,
    PanelType,
    ReadingDirection,
    ReadingOrderAlgorithm,
    SegmentationResult,
)

__all__ = [
    "LayoutClassification",
    "LayoutType",
    "PageContext",
    "Panel",
    "PanelNeighbors",
    "PanelType",
    "ReadingDirection",
    "ReadingOrderAlgorithm",
    "STRATEGIES",
    "SegmentConfig",
    "SegmentationResult",
    "assign_reading_order",
    "boundaries_from_gutters",
    "classify_layout",
    "classify_panel_types",
    "compute_content_bounds",
    "crop_panel",
    "detect_borderless_panels",
    "detect_gutters",
    "detect_inset_panels",
    "detect_strong_lines",
    "filter_panels",
    "grid_score",
    "group_columns",
    "group_rows",
    "ink_density",
    "is_valid_panel",
    "link_neighbors",
    "merge_lines",
    "merge_overlapping",
    "segment",
    "segment_grid",
    "segment_traditional",
    "segment_webtoon",
]
