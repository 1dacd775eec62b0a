"""Application configuration loaded from the environment."""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..layout.context import SegmentConfig
from ..layout.types import ReadingDirection, ReadingOrderAlgorithm
from ..preprocess.deskew import DeskewConfig, SkewMethod

_DESKEW = DeskewConfig()
_SEGMENT = SegmentConfig()


class Settings(BaseSettings):
    """Tunable thresholds for deskew and segmentation, read from ``MANGALAYOUT_*`` variables."""

    max_skew_angle: float = _DESKEW.max_skew_angle
    min_skew_angle: float = _DESKEW.min_skew_angle
    deskew_downsample_width: int = _DESKEW.downsample_width
    deskew_method: SkewMethod = SkewMethod.HYBRID
    hough_threshold: int = _DESKEW.hough_threshold
    hough_angle_step: float = _DESKEW.hough_angle_step
    projection_step: float = _DESKEW.projection_step
    prefer_horizontal: bool = _DESKEW.prefer_horizontal
    orientation_confidence_threshold: float = _DESKEW.orientation_confidence_threshold
    min_correction_angle: float = _DESKEW.min_correction_angle
    min_correction_confidence: float = _DESKEW.min_correction_confidence

    segment_downsample_max_dim: int = _SEGMENT.downsample_max_dim
    gap_threshold: int = _SEGMENT.gap_threshold
    line_merge_threshold: int = _SEGMENT.line_merge_threshold
    min_panel_area_ratio: float = _SEGMENT.min_panel_area_ratio
    max_panel_area_ratio: float = _SEGMENT.max_panel_area_ratio
    aspect_ratio_min: float = _SEGMENT.aspect_ratio_min
    aspect_ratio_max: float = _SEGMENT.aspect_ratio_max
    min_panel_dimension: int = _SEGMENT.min_panel_dimension
    content_threshold: float = _SEGMENT.content_threshold
    overlap_threshold: float = _SEGMENT.overlap_threshold
    max_inset_depth: int = _SEGMENT.max_inset_depth
    reading_direction: ReadingDirection = _SEGMENT.reading_direction
    reading_order_algorithm: ReadingOrderAlgorithm = _SEGMENT.reading_order_algorithm

    batch_concurrency: int = 1
    max_processing_time_ms: float = 5000.0

    model_config = SettingsConfigDict(
        env_prefix="mangalayout_",
        env_file=".env",
    )

    @field_validator("reading_direction", mode="before")
    def normalize_reading_direction(cls, value):
        """Accept ``manga``/``western``/``webtoon`` and any letter case."""
        if value in (None, ""):
            return ReadingDirection.RTL
        return ReadingDirection.parse(value)

    @field_validator("reading_order_algorithm", mode="before")
    def normalize_reading_order_algorithm(cls, value):
        """Accept ``Row_Major``-style spellings of the ordering algorithm."""
        if value in (None, ""):
            return ReadingOrderAlgorithm.Z_PATTERN
        return ReadingOrderAlgorithm.parse(value)

    @field_validator("deskew_method", mode="before")
    def normalize_deskew_method(cls, value):
        """Normalise the estimator name to lower case."""
        if value in (None, ""):
            return SkewMethod.HYBRID
        if isinstance(value, SkewMethod):
            return value
        return str(value).strip().lower()

    @field_validator("batch_concurrency", mode="before")
    def ensure_positive_concurrency(cls, value):
        """Treat empty or non-positive values as sequential processing."""
        if value in (None, ""):
            return 1
        return max(1, int(value))

    @model_validator(mode="after")
    def ensure_ordered_bounds(self):
        """Reject inverted angle, area and aspect ranges."""

        if self.min_skew_angle > self.max_skew_angle:
            raise ValueError(
                f"min_skew_angle ({self.min_skew_angle}) exceeds max_skew_angle ({self.max_skew_angle})."
            )
        if self.min_panel_area_ratio > self.max_panel_area_ratio:
            raise ValueError(
                f"min_panel_area_ratio ({self.min_panel_area_ratio}) exceeds "
                f"max_panel_area_ratio ({self.max_panel_area_ratio})."
            )
        if self.aspect_ratio_min > self.aspect_ratio_max:
            raise ValueError(
                f"aspect_ratio_min ({self.aspect_ratio_min}) exceeds aspect_ratio_max ({self.aspect_ratio_max})."
            )
        return self

    def deskew_config(self) -> DeskewConfig:
        """Build the :class:`DeskewConfig` used by :func:`mangalayout.preprocess.deskew`."""

        return DeskewConfig(
            max_skew_angle=self.max_skew_angle,
            min_skew_angle=self.min_skew_angle,
            downsample_width=self.deskew_downsample_width,
            hough_threshold=self.hough_threshold,
            hough_angle_step=self.hough_angle_step,
            projection_step=self.projection_step,
            prefer_horizontal=self.prefer_horizontal,
            orientation_confidence_threshold=self.orientation_confidence_threshold,
            min_correction_angle=self.min_correction_angle,
            min_correction_confidence=self.min_correction_confidence,
            max_processing_time_ms=self.max_processing_time_ms,
        )

    def segment_config(self) -> SegmentConfig:
        """Build the :class:`SegmentConfig` used by :func:`mangalayout.layout.segment`."""

        return SegmentConfig(
            downsample_max_dim=self.segment_downsample_max_dim,
            gap_threshold=self.gap_threshold,
            line_merge_threshold=self.line_merge_threshold,
            min_panel_area_ratio=self.min_panel_area_ratio,
            max_panel_area_ratio=self.max_panel_area_ratio,
            aspect_ratio_min=self.aspect_ratio_min,
            aspect_ratio_max=self.aspect_ratio_max,
            min_panel_dimension=self.min_panel_dimension,
            content_threshold=self.content_threshold,
            overlap_threshold=self.overlap_threshold,
            max_inset_depth=self.max_inset_depth,
            reading_direction=self.reading_direction,
            reading_order_algorithm=self.reading_order_algorithm,
            max_processing_time_ms=self.max_processing_time_ms,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
