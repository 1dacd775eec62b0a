"""Page layout classification: traditional, grid or webtoon."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from ..preprocess.binarize import variance
from .context import SegmentConfig
from .types import LayoutType


@dataclass(frozen=True)
class LayoutClassification:
    layout_type: LayoutType
    grid_score: float = 0.0
    aspect_ratio: float = 0.0


def edge_map(gray: np.ndarray, sensitivity: int = 30) -> np.ndarray:
    """Central-difference gradient ``|gx| + |gy| > sensitivity`` on interior pixels."""

    height, width = gray.shape
    edges = np.zeros((height, width), dtype=bool)
    if height < 3 or width < 3:
        return edges
    data = gray.astype(np.int16)
    gx = np.abs(data[1:-1, 2:] - data[1:-1, :-2])
    gy = np.abs(data[2:, 1:-1] - data[:-2, 1:-1])
    edges[1:-1, 1:-1] = (gx + gy) > sensitivity
    return edges


def detect_strong_lines(
    gray: np.ndarray,
    axis: str,
    *,
    sensitivity: int = 30,
    ratio: float = 0.3,
) -> List[int]:
    """Rows (``axis="horizontal"``) or columns (``"vertical"``) crossed by many edges."""

    edges = edge_map(gray, sensitivity)
    height, width = edges.shape
    if axis == "horizontal":
        counts = edges.sum(axis=1)
        limit = width * ratio
    elif axis == "vertical":
        counts = edges.sum(axis=0)
        limit = height * ratio
    else:
        raise ValueError(f"Unknown axis: {axis}")
    return [int(position) for position in np.flatnonzero(counts > limit)]


def merge_lines(lines: Sequence[int], tolerance: int = 10) -> List[int]:
    """Collapse sorted line positions closer than ``tolerance`` to their running mean."""

    if not lines:
        return []
    merged: List[int] = []
    total = float(lines[0])
    count = 1
    for position in lines[1:]:
        if position - total / count <= tolerance:
            total += position
            count += 1
        else:
            merged.append(int(round(total / count)))
            total = float(position)
            count = 1
    merged.append(int(round(total / count)))
    return merged


def _regularity(lines: Sequence[int]) -> float:
    spacing = np.diff(np.asarray(lines, dtype=np.float64))
    mean = float(spacing.mean())
    if mean <= 0:
        return 0.0
    return 1.0 - variance(spacing) / (mean * mean)


def grid_score(horizontal: Sequence[int], vertical: Sequence[int], tolerance: int = 10) -> float:
    """Mean spacing regularity of the merged horizontal and vertical lines."""

    merged_h = merge_lines(horizontal, tolerance)
    merged_v = merge_lines(vertical, tolerance)
    if len(merged_h) < 2 or len(merged_v) < 2:
        return 0.0
    return (_regularity(merged_h) + _regularity(merged_v)) / 2.0


def classify_layout(gray: np.ndarray, config: SegmentConfig | None = None) -> LayoutClassification:
    """Label the page so the matching segmentation strategy can run."""

    config = config or SegmentConfig()
    height, width = gray.shape
    aspect_ratio = width / float(height) if height else 0.0

    if aspect_ratio < config.webtoon_aspect_ratio and height > width * 3:
        return LayoutClassification(LayoutType.WEBTOON, 0.0, aspect_ratio)

    horizontal = detect_strong_lines(
        gray, "horizontal", sensitivity=config.edge_sensitivity, ratio=config.strong_line_ratio
    )
    vertical = detect_strong_lines(
        gray, "vertical", sensitivity=config.edge_sensitivity, ratio=config.strong_line_ratio
    )
    score = grid_score(horizontal, vertical, config.line_merge_threshold)
    if score > config.grid_score_threshold:
        return LayoutClassification(LayoutType.GRID, score, aspect_ratio)
    return LayoutClassification(LayoutType.TRADITIONAL, score, aspect_ratio)
