"""Page layout analysis for comic and manga pages: deskew and panel segmentation."""

from .errors import ErrorKind, InvalidInputError, LayoutAnalysisError, SegmentationError
from .layout import (
    LayoutType,
    Panel,
    PanelType,
    ReadingDirection,
    ReadingOrderAlgorithm,
    SegmentConfig,
    SegmentationResult,
    crop_panel,
    segment,
)
from .pipeline import PageAnalysis, PageError, analyze_batch, analyze_page
from .preprocess import DeskewConfig, DeskewResult, SkewEstimate, SkewMethod, TextOrientation, deskew, deskew_batch
from .raster import RasterImage, Rect

__version__ = "0.1.0"

__all__ = [
    "DeskewConfig",
    "DeskewResult",
    "ErrorKind",
    "InvalidInputError",
    "LayoutAnalysisError",
    "LayoutType",
    "PageAnalysis",
    "PageError",
    "Panel",
    "PanelType",
    "RasterImage",
    "ReadingDirection",
    "ReadingOrderAlgorithm",
    "Rect",
    "SegmentConfig",
    "SegmentationError",
    "SegmentationResult",
    "SkewEstimate",
    "SkewMethod",
    "TextOrientation",
    "analyze_batch",
    "analyze_page",
    "crop_panel",
    "deskew",
    "deskew_batch",
    "segment",
]
