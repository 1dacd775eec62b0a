"""Page preprocessing: grayscale, binarisation, orientation and deskew."""

from .binarize import binarize, count_stripes, find_runs, local_mean, sobel_magnitude, to_grayscale, variance
from .deskew import (
    AngleEstimate,
    DeskewConfig,
    DeskewResult,
    SkewEstimate,
    SkewMethod,
    deskew,
    deskew_batch,
    estimate_skew_hough,
    estimate_skew_projection,
    rotate_image,
)
from .orientation import OrientationResult, TextOrientation, detect_orientation

__all__ = [
    "AngleEstimate",
    "DeskewConfig",
    "DeskewResult",
    "OrientationResult",
    "SkewEstimate",
    "SkewMethod",
    "TextOrientation",
    "binarize",
    "count_stripes",
    "deskew",
    "deskew_batch",
    "detect_orientation",
    "estimate_skew_hough",
    "estimate_skew_projection",
    "find_runs",
    "local_mean",
    "rotate_image",
    "sobel_magnitude",
    "to_grayscale",
    "variance",
]
