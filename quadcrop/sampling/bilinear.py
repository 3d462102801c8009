"""
Bilinear colour sampling at fractional pixel coordinates.

Out-of-bounds neighbours are clamped to the nearest edge pixel rather than
treated as transparent, so corners placed on (or just past) the image border
do not pull dark fringes into the rectified output.  Channels are
interpolated independently and rounded half-up.
"""

import math

import numpy as np


def check_pixel_buffer(buffer: np.ndarray) -> np.ndarray:
    """Return *buffer* if it is an H x W x C uint8 array, else raise ValueError."""
    if not isinstance(buffer, np.ndarray) or buffer.ndim != 3:
        raise ValueError("pixel buffer must be an H x W x C array")
    if buffer.dtype != np.uint8:
        raise ValueError(f"pixel buffer must be uint8, got {buffer.dtype}")
    if buffer.shape[0] == 0 or buffer.shape[1] == 0:
        raise ValueError("pixel buffer is empty")
    return buffer


def bilinear_sample(buffer: np.ndarray, x: float, y: float) -> tuple:
    """Interpolate one colour from the four pixels around ``(x, y)``.

    Parameters
    ----------
    buffer : np.ndarray
        H x W x C uint8 image (RGBA in practice).
    x, y : float
        Column and row in source-pixel units.

    Returns
    -------
    tuple of int
        One value per channel.
    """
    check_pixel_buffer(buffer)
    h, w = buffer.shape[:2]
    # Coordinates past the border all resolve to the edge pixel.
    x = min(max(float(x), -1.0), float(w))
    y = min(max(float(y), -1.0), float(h))

    x0 = math.floor(x)
    y0 = math.floor(y)
    fx = x - x0
    fy = y - y0

    cx0, cx1 = min(max(x0, 0), w - 1), min(max(x0 + 1, 0), w - 1)
    cy0, cy1 = min(max(y0, 0), h - 1), min(max(y0 + 1, 0), h - 1)

    p00 = buffer[cy0, cx0].astype(np.float64)
    p01 = buffer[cy0, cx1].astype(np.float64)
    p10 = buffer[cy1, cx0].astype(np.float64)
    p11 = buffer[cy1, cx1].astype(np.float64)

    value = (p00 * (1 - fx) + p01 * fx) * (1 - fy) + (p10 * (1 - fx) + p11 * fx) * fy
    value = np.clip(np.floor(value + 0.5), 0, 255)
    return tuple(int(v) for v in value)


def bilinear_sample_many(buffer: np.ndarray, xs, ys) -> np.ndarray:
    """Vectorised :func:`bilinear_sample` over matching coordinate arrays.

    Parameters
    ----------
    buffer : np.ndarray
        H x W x C uint8 image.
    xs, ys : array-like
        N column / row coordinates.

    Returns
    -------
    np.ndarray
        N x C uint8 colours.
    """
    check_pixel_buffer(buffer)
    h, w = buffer.shape[:2]
    xs = np.clip(np.asarray(xs, dtype=float).ravel(), -1.0, w)
    ys = np.clip(np.asarray(ys, dtype=float).ravel(), -1.0, h)
    if xs.shape != ys.shape:
        raise ValueError("xs and ys must have the same length")

    x0 = np.floor(xs)
    y0 = np.floor(ys)
    fx = (xs - x0)[:, np.newaxis]
    fy = (ys - y0)[:, np.newaxis]
    x0 = x0.astype(np.intp)
    y0 = y0.astype(np.intp)

    cx0, cx1 = np.clip(x0, 0, w - 1), np.clip(x0 + 1, 0, w - 1)
    cy0, cy1 = np.clip(y0, 0, h - 1), np.clip(y0 + 1, 0, h - 1)

    p00 = buffer[cy0, cx0].astype(np.float64)
    p01 = buffer[cy0, cx1].astype(np.float64)
    p10 = buffer[cy1, cx0].astype(np.float64)
    p11 = buffer[cy1, cx1].astype(np.float64)

    value = (p00 * (1 - fx) + p01 * fx) * (1 - fy) + (p10 * (1 - fx) + p11 * fx) * fy
    return np.clip(np.floor(value + 0.5), 0, 255).astype(np.uint8)
