"""Grayscale conversion, adaptive binarisation and projection helpers.

Both the deskewer and the panel segmenter start from the luminance of the
page.  The helpers in this module are pure: they never modify their inputs
and allocate fresh arrays on every call, so they can be shared freely across
threads.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

import cv2
import numpy as np

from ..raster import RasterImage

# ITU-R BT.601 luma weights applied to the R, G and B samples.
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

DEFAULT_WINDOW_SIZE = 15
DEFAULT_BIAS = 10.0


def to_grayscale(image: RasterImage | np.ndarray) -> np.ndarray:
    """Return the rounded luminance of ``image`` as a ``(H, W)`` uint8 array."""

    pixels = image.pixels if isinstance(image, RasterImage) else np.asarray(image)
    if pixels.ndim == 2:
        return pixels.astype(np.uint8, copy=True)

    rgb = pixels[..., :3].astype(np.float64)
    luma = np.rint(rgb @ LUMA_WEIGHTS)
    return np.clip(luma, 0, 255).astype(np.uint8)


def local_mean(gray: np.ndarray, window_size: int = DEFAULT_WINDOW_SIZE) -> np.ndarray:
    """Mean of every ``window_size`` square neighbourhood, clipped to the image.

    Pixels near the border average only the samples that exist; there is no
    padding or wraparound.
    """

    if window_size <= 0 or window_size % 2 == 0:
        raise ValueError("window_size must be a positive odd integer")

    height, width = gray.shape
    half = window_size // 2
    integral = cv2.integral(np.ascontiguousarray(gray), sdepth=cv2.CV_64F)

    ys = np.arange(height)
    xs = np.arange(width)
    y0 = np.clip(ys - half, 0, height)
    y1 = np.clip(ys + half + 1, 0, height)
    x0 = np.clip(xs - half, 0, width)
    x1 = np.clip(xs + half + 1, 0, width)

    sums = (
        integral[np.ix_(y1, x1)]
        - integral[np.ix_(y0, x1)]
        - integral[np.ix_(y1, x0)]
        + integral[np.ix_(y0, x0)]
    )
    counts = np.outer(y1 - y0, x1 - x0).astype(np.float64)
    return sums / counts


def binarize(
    gray: np.ndarray,
    window_size: int = DEFAULT_WINDOW_SIZE,
    bias: float = DEFAULT_BIAS,
) -> np.ndarray:
    """Adaptive local-mean threshold; ``True`` marks ink.

    A pixel is ink when it is darker than its neighbourhood mean minus
    ``bias``.  The bias pushes mid-tones towards the background.
    """

    if gray.ndim != 2:
        raise ValueError("binarize expects a single channel image")
    if gray.size == 0:
        return np.zeros(gray.shape, dtype=bool)
    return gray.astype(np.float64) < (local_mean(gray, window_size) - bias)


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """3x3 Sobel gradient magnitude clipped to 255, zero on the outer border."""

    source = gray.astype(np.float32)
    gx = cv2.Sobel(source, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(source, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = np.minimum(np.sqrt(gx * gx + gy * gy), 255.0).astype(np.uint8)
    magnitude[0, :] = 0
    magnitude[-1, :] = 0
    magnitude[:, 0] = 0
    magnitude[:, -1] = 0
    return magnitude


def variance(values: Sequence[float] | np.ndarray) -> float:
    """Population variance; 0 for an empty sequence."""

    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(np.var(data))


def count_stripes(profile: np.ndarray, ratio: float = 0.1) -> int:
    """Count contiguous runs of ``profile`` strictly above ``ratio * max``."""

    data = np.asarray(profile, dtype=np.float64)
    if data.size == 0:
        return 0
    above = data > data.max() * ratio
    if not np.any(above):
        return 0
    starts = np.count_nonzero(above[1:] & ~above[:-1])
    return int(starts + (1 if above[0] else 0))


def find_runs(flags: np.ndarray) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` pairs (end exclusive) of consecutive ``True`` values."""

    data = np.asarray(flags, dtype=bool)
    if data.size == 0:
        return []
    padded = np.concatenate(([False], data, [False]))
    changes = np.flatnonzero(padded[1:] != padded[:-1])
    return [(int(start), int(end)) for start, end in zip(changes[::2], changes[1::2])]
