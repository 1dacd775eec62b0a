"""Text orientation detection from projection profiles.

Manga pages mix horizontal captions with vertical CJK dialogue, so the
projection-profile skew estimator needs to know along which axis text lines
run.  Horizontal text produces strong banding in the vertical projection
(ink per row); vertical columns band the horizontal projection (ink per
column).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np

from .binarize import count_stripes, variance

DEFAULT_ORIENTATION_THRESHOLD = 0.7


class TextOrientation(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    MIXED = "mixed"


@dataclass(frozen=True)
class OrientationResult:
    """Detected orientation with the raw scores that produced it."""

    orientation: TextOrientation
    confidence: float
    horizontal_score: float = 0.0
    vertical_score: float = 0.0


def detect_orientation(
    mask: np.ndarray,
    threshold: float = DEFAULT_ORIENTATION_THRESHOLD,
) -> OrientationResult:
    """Classify the dominant text direction of a binary ink mask."""

    ink = np.asarray(mask, dtype=bool)
    vertical_projection = ink.sum(axis=1)
    horizontal_projection = ink.sum(axis=0)

    vertical_variance = variance(vertical_projection)
    horizontal_variance = variance(horizontal_projection)
    horizontal_stripes = count_stripes(vertical_projection)
    vertical_stripes = count_stripes(horizontal_projection)

    horizontal_score = (vertical_variance / (horizontal_variance + 1)) * (horizontal_stripes + 1)
    vertical_score = (horizontal_variance / (vertical_variance + 1)) * (vertical_stripes + 1)

    total = horizontal_score + vertical_score
    horizontal_share = horizontal_score / total if total > 0 else 0.5

    if horizontal_share > threshold:
        return OrientationResult(TextOrientation.HORIZONTAL, horizontal_share, horizontal_score, vertical_score)
    if horizontal_share < 1 - threshold:
        return OrientationResult(TextOrientation.VERTICAL, 1 - horizontal_share, horizontal_score, vertical_score)
    return OrientationResult(TextOrientation.MIXED, 0.5, horizontal_score, vertical_score)
