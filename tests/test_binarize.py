import numpy as np
import pytest

from mangalayout.preprocess import binarize, count_stripes, find_runs, local_mean, sobel_magnitude, to_grayscale
from mangalayout.raster import RasterImage


def test_to_grayscale_uses_rounded_luma():
    pixels = np.zeros((1, 3, 4), dtype=np.uint8)
    pixels[0, 0] = (255, 0, 0, 255)
    pixels[0, 1] = (0, 255, 0, 255)
    pixels[0, 2] = (0, 0, 255, 255)

    gray = to_grayscale(RasterImage(pixels))

    assert gray.tolist() == [[76, 150, 29]]


def test_local_mean_clips_window_at_the_border():
    gray = np.arange(9, dtype=np.uint8).reshape(3, 3)

    mean = local_mean(gray, 3)

    assert mean[0, 0] == pytest.approx(np.mean([0, 1, 3, 4]))
    assert mean[1, 1] == pytest.approx(4.0)


def test_local_mean_rejects_even_window():
    with pytest.raises(ValueError):
        local_mean(np.zeros((4, 4), dtype=np.uint8), 4)


def test_binarize_marks_dark_strokes_only():
    gray = np.full((30, 30), 255, dtype=np.uint8)
    gray[14:16, 5:25] = 0

    mask = binarize(gray)

    assert mask[14:16, 5:25].all()
    assert mask.sum() == 40


def test_sobel_border_is_zero():
    gray = np.zeros((10, 10), dtype=np.uint8)
    gray[:, 5:] = 255

    magnitude = sobel_magnitude(gray)

    assert magnitude[:, 0].max() == 0
    assert magnitude[0, :].max() == 0
    assert magnitude[5, 5] == 255


def test_find_runs_and_stripes():
    flags = np.array([0, 1, 1, 0, 1, 0, 0, 1], dtype=bool)

    assert find_runs(flags) == [(1, 3), (4, 5), (7, 8)]
    assert count_stripes(np.array([0, 5, 5, 0, 9, 0])) == 2
    assert count_stripes(np.zeros(4)) == 0
