"""Image file access."""

from .ingest import (
    SUPPORTED_EXTENSIONS,
    UnsupportedFormatError,
    iter_rasters,
    load_raster,
    load_rasters,
    raster_from_pil,
    raster_to_pil,
    save_raster,
    validate_source,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "UnsupportedFormatError",
    "iter_rasters",
    "load_raster",
    "load_rasters",
    "raster_from_pil",
    "raster_to_pil",
    "save_raster",
    "validate_source",
]
