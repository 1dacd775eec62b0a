"""Configuration and per-call working state for panel segmentation."""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from ..core.deadline import Deadline
from ..raster import Rect
from .types import ReadingDirection, ReadingOrderAlgorithm


@dataclass
class SegmentConfig:
    """Configuration container for the panel segmenter."""

    downsample_max_dim: int = 1200
    min_panel_area_ratio: float = 0.01
    max_panel_area_ratio: float = 0.95
    aspect_ratio_min: float = 0.1
    aspect_ratio_max: float = 10.0
    min_panel_dimension: int = 50
    gap_threshold: int = 15
    line_merge_threshold: int = 10
    edge_sensitivity: int = 30
    strong_line_ratio: float = 0.3
    grid_score_threshold: float = 0.7
    webtoon_aspect_ratio: float = 0.3
    webtoon_ink_threshold: float = 0.02
    white_level: int = 240
    gutter_ratio: float = 0.8
    content_threshold: float = 0.02
    min_component_area: int = 100
    overlap_threshold: float = 0.3
    edge_margin: int = 10
    inset_min_ratio: float = 0.05
    inset_max_ratio: float = 0.9
    max_inset_depth: int = 3
    reading_direction: ReadingDirection = ReadingDirection.RTL
    reading_order_algorithm: ReadingOrderAlgorithm = ReadingOrderAlgorithm.Z_PATTERN
    max_processing_time_ms: float = 5000.0


@dataclass
class PageContext:
    """Working buffers for one ``segment`` call.

    A context is created at the start of every call and discarded at the
    end, so no pixel data is shared between calls.
    """

    gray: np.ndarray
    config: SegmentConfig
    deadline: Deadline = field(default_factory=Deadline)

    @property
    def height(self) -> int:
        return int(self.gray.shape[0])

    @property
    def width(self) -> int:
        return int(self.gray.shape[1])

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def page_rect(self) -> Rect:
        return Rect(0, 0, self.width, self.height)

    def region(self, rect: Rect) -> np.ndarray:
        """View of the grayscale page inside ``rect`` (clipped to the page)."""

        clipped = rect.clamped(self.page_rect)
        return self.gray[clipped.to_slice()]
