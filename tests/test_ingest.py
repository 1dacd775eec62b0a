from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from mangalayout.io import (
    UnsupportedFormatError,
    iter_rasters,
    load_raster,
    raster_from_pil,
    raster_to_pil,
    save_raster,
    validate_source,
)
from mangalayout.raster import RasterImage


def _sample_raster() -> RasterImage:
    pixels = np.zeros((24, 32, 4), dtype=np.uint8)
    pixels[..., 0] = np.arange(32, dtype=np.uint8)
    pixels[..., 1] = 128
    pixels[..., 3] = 255
    return RasterImage(pixels)


def test_png_round_trip_preserves_pixels(tmp_path: Path):
    raster = _sample_raster()

    path = save_raster(raster, tmp_path / "pages" / "page.png")
    loaded = load_raster(path)

    assert loaded.size == (32, 24)
    assert np.array_equal(loaded.pixels, raster.pixels)


def test_grayscale_pil_image_becomes_opaque_rgba():
    image = Image.new("L", (10, 6), color=200)

    raster = raster_from_pil(image)

    assert raster.pixels.shape == (6, 10, 4)
    assert tuple(raster.pixels[0, 0]) == (200, 200, 200, 255)
    assert raster_to_pil(raster).mode == "RGBA"


def test_multi_frame_tiff_yields_every_page(tmp_path: Path):
    path = tmp_path / "chapter.tiff"
    first = Image.new("RGB", (20, 30), color=(255, 255, 255))
    second = Image.new("RGB", (20, 30), color=(0, 0, 0))
    first.save(path, save_all=True, append_images=[second])

    pages = list(iter_rasters(path))

    assert len(pages) == 2
    assert pages[1].pixels[..., :3].max() == 0


def test_validate_source_rejects_unknown_suffix(tmp_path: Path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image")

    with pytest.raises(UnsupportedFormatError):
        validate_source(path)
    with pytest.raises(FileNotFoundError):
        validate_source(tmp_path / "missing.png")
    with pytest.raises(UnsupportedFormatError):
        save_raster(_sample_raster(), tmp_path / "page.xyz")


def test_jpeg_output_drops_alpha(tmp_path: Path):
    path = save_raster(_sample_raster(), tmp_path / "page.jpg")

    with Image.open(path) as image:
        assert image.mode == "RGB"
