"""Panel and segmentation result containers."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from ..raster import Rect


class LayoutType(str, Enum):
    TRADITIONAL = "traditional"
    GRID = "grid"
    WEBTOON = "webtoon"


class PanelType(str, Enum):
    STANDARD = "standard"
    FULL_BLEED = "full-bleed"
    EDGE_PANEL = "edge-panel"
    BORDERLESS = "borderless"
    INSET = "inset"
    GRID_PANEL = "grid-panel"
    WEBTOON_PANEL = "webtoon-panel"


class ReadingDirection(str, Enum):
    RTL = "rtl"
    LTR = "ltr"
    TTB = "ttb"

    @classmethod
    def parse(cls, value: "ReadingDirection | str") -> "ReadingDirection":
        """Accept enum members, their values, or the manga/western/webtoon aliases."""

        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        aliases = {"manga": cls.RTL, "western": cls.LTR, "comic": cls.LTR, "webtoon": cls.TTB}
        if text in aliases:
            return aliases[text]
        return cls(text)


class ReadingOrderAlgorithm(str, Enum):
    """How panels are walked before the reading direction is applied."""

    Z_PATTERN = "z-pattern"
    ROW_MAJOR = "row-major"
    COLUMN_MAJOR = "column-major"

    @classmethod
    def parse(cls, value: "ReadingOrderAlgorithm | str") -> "ReadingOrderAlgorithm":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower().replace("_", "-"))


def _new_panel_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PanelNeighbors:
    """Ids of the nearest panel in each direction (non-owning references)."""

    top: Optional[str] = None
    bottom: Optional[str] = None
    left: Optional[str] = None
    right: Optional[str] = None

    def ids(self) -> List[str]:
        return [value for value in (self.top, self.bottom, self.left, self.right) if value is not None]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"top": self.top, "bottom": self.bottom, "left": self.left, "right": self.right}


@dataclass(frozen=True)
class Panel:
    """A detected panel region in page pixel coordinates."""

    bounds: Rect
    type: PanelType = PanelType.STANDARD
    confidence: float = 0.0
    ink_density: float = 0.0
    content_bounds: Optional[Rect] = None
    reading_order: int = -1
    neighbors: PanelNeighbors = field(default_factory=PanelNeighbors)
    grid_position: Optional[Tuple[int, int]] = None
    parent_id: Optional[str] = None
    id: str = field(default_factory=_new_panel_id)

    @property
    def area(self) -> int:
        return self.bounds.area

    @property
    def center(self) -> Tuple[float, float]:
        return self.bounds.center

    def contains_point(self, x: float, y: float) -> bool:
        return self.bounds.contains_point(x, y)

    def overlaps(self, other: "Panel", threshold: float = 0.1) -> bool:
        """True when the intersection exceeds ``threshold`` of the smaller panel."""

        return self.bounds.overlap_ratio(other.bounds) > threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bounds": self.bounds.to_dict(),
            "content_bounds": self.content_bounds.to_dict() if self.content_bounds else None,
            "type": self.type.value,
            "confidence": self.confidence,
            "ink_density": self.ink_density,
            "reading_order": self.reading_order,
            "neighbors": self.neighbors.to_dict(),
            "grid_position": list(self.grid_position) if self.grid_position else None,
            "parent_id": self.parent_id,
        }


@dataclass(frozen=True)
class SegmentationResult:
    """Immutable report produced by one ``segment`` call."""

    panels: Tuple[Panel, ...]
    layout_type: LayoutType
    page_bounds: Rect
    processing_time_ms: float
    scale_factor: float
    timestamp: float
    layout_score: float = 0.0
    partial: bool = False

    @property
    def panel_count(self) -> int:
        return len(self.panels)

    @property
    def average_panel_area(self) -> float:
        if not self.panels:
            return 0.0
        return sum(panel.area for panel in self.panels) / len(self.panels)

    def panel_by_order(self, order: int) -> Optional[Panel]:
        return next((panel for panel in self.panels if panel.reading_order == order), None)

    def panel_at(self, x: float, y: float) -> Optional[Panel]:
        return next((panel for panel in self.panels if panel.contains_point(x, y)), None)

    def panel_by_id(self, panel_id: str) -> Optional[Panel]:
        return next((panel for panel in self.panels if panel.id == panel_id), None)

    def in_reading_order(self) -> List[Panel]:
        ordered = [panel for panel in self.panels if panel.reading_order >= 0]
        return sorted(ordered, key=lambda panel: panel.reading_order)

    def adjacency(self, symmetric: bool = True) -> Dict[str, Set[str]]:
        """Neighbour graph keyed by panel id.

        Neighbour links are computed per panel and may be one-sided; with
        ``symmetric`` every link is mirrored.
        """

        graph: Dict[str, Set[str]] = {panel.id: set() for panel in self.panels}
        for panel in self.panels:
            for other in panel.neighbors.ids():
                if other not in graph:
                    continue
                graph[panel.id].add(other)
                if symmetric:
                    graph[other].add(panel.id)
        return graph

    def to_dict(self) -> Dict[str, Any]:
        return {
            "panels": [panel.to_dict() for panel in self.panels],
            "layout_type": self.layout_type.value,
            "layout_score": self.layout_score,
            "page_bounds": self.page_bounds.to_dict(),
            "processing_time_ms": self.processing_time_ms,
            "scale_factor": self.scale_factor,
            "timestamp": self.timestamp,
            "partial": self.partial,
        }
