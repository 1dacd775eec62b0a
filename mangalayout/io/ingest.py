"""Pillow adapters between image files and :class:`RasterImage`."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import numpy as np
from PIL import Image, ImageSequence, UnidentifiedImageError

from ..errors import InvalidInputError
from ..raster import RasterImage


class UnsupportedFormatError(ValueError):
    """Raised when the user provides an unsupported file type."""


SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".tif", ".tiff", ".bmp", ".gif"}


def validate_source(path: Path) -> Path:
    """Validate and normalise the provided ``path``."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported input format: {path.suffix}")
    return path


def raster_from_pil(image: Image.Image) -> RasterImage:
    """Convert any PIL image mode to an RGBA :class:`RasterImage`."""

    return RasterImage(np.array(image.convert("RGBA"), dtype=np.uint8))


def raster_to_pil(raster: RasterImage) -> Image.Image:
    """Return a displayable RGBA PIL image sharing no memory with ``raster``."""

    return Image.fromarray(raster.pixels.copy())


def iter_rasters(path: Path) -> Iterator[RasterImage]:
    """Yield every frame of ``path`` (one for most formats, several for TIFF/GIF)."""

    path = validate_source(path)
    try:
        document = Image.open(path)
    except UnidentifiedImageError as exc:
        raise InvalidInputError(f"Failed to decode {path}: {exc}") from exc
    with document as document:
        for frame in ImageSequence.Iterator(document):
            yield raster_from_pil(frame)


def load_raster(path: Path) -> RasterImage:
    """Load the first frame of ``path``."""

    for raster in iter_rasters(path):
        return raster
    raise InvalidInputError(f"{path} contains no image frames")


def load_rasters(path: Path) -> List[RasterImage]:
    return list(iter_rasters(path))


def save_raster(raster: RasterImage, path: Path) -> Path:
    """Encode ``raster`` to ``path``; the format follows the suffix."""

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported output format: {path.suffix}")
    image = raster_to_pil(raster)
    if suffix in {".jpg", ".jpeg", ".bmp"}:
        image = image.convert("RGB")
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)
    return path
