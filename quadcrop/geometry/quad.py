"""
Quadrilateral validation and corner helpers.

A quad is four (x, y) corners in source-pixel units, ordered top-left,
top-right, bottom-right, bottom-left.  The order is meaningful: it decides
which source region lands on which destination corner.  Every function here
is pure; edits return a new quad instead of mutating the caller's copy.
"""

import math

import numpy as np

# Consecutive corners closer than this are treated as coincident (pixels).
POINT_EPS = 1e-6
# Minimum |sin| of the turn at each corner; smaller means a collinear triple.
TURN_EPS = 1e-6
# Minimum enclosed area (square pixels).
AREA_EPS = 1e-6


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def as_quad(quad) -> np.ndarray:
    """Return *quad* as a fresh 4 x 2 float64 array of (x, y) corners.

    Raises
    ------
    ValueError
        If *quad* is not four 2-D points.
    """
    arr = np.array(quad, dtype=float)
    if arr.shape != (4, 2):
        raise ValueError(f"quad must be 4 (x, y) corners, received shape {arr.shape}")
    return arr


def signed_area(quad) -> float:
    """Shoelace area; positive for TL→TR→BR→BL in y-down image coordinates."""
    pts = as_quad(quad)
    nxt = np.roll(pts, -1, axis=0)
    return 0.5 * float(np.sum(pts[:, 0] * nxt[:, 1] - nxt[:, 0] * pts[:, 1]))


def is_valid_quad(quad) -> bool:
    """Decide whether four ordered corners form a usable quadrilateral.

    A quad is valid when no two consecutive corners coincide, no three
    consecutive corners are collinear, every turn is clockwise on screen
    (positive cross product in y-down image coordinates) and the enclosed
    area is non-zero.  With four vertices, turns of one sign can only add up
    to a single revolution, so a quad passing these checks is simple and
    convex; bowtie orderings fail the sign test.  Requiring the clockwise
    sign rejects corners listed in mirrored order (TL, BL, BR, TR), which
    would otherwise produce a transposed crop.

    Parameters
    ----------
    quad : array-like
        4 x 2 (x, y) corners in TL, TR, BR, BL order.

    Returns
    -------
    bool
        True when the quad may be handed to the resampler.
    """
    pts = as_quad(quad)
    if not np.all(np.isfinite(pts)):
        return False

    edges = np.roll(pts, -1, axis=0) - pts
    lengths = np.hypot(edges[:, 0], edges[:, 1])
    if np.any(lengths <= POINT_EPS):
        return False

    next_edges = np.roll(edges, -1, axis=0)
    cross = edges[:, 0] * next_edges[:, 1] - edges[:, 1] * next_edges[:, 0]
    if np.any(np.abs(cross) <= TURN_EPS * lengths * np.roll(lengths, -1)):
        return False
    if not np.all(cross > 0):
        return False

    return signed_area(pts) > AREA_EPS


def edge_lengths(quad):
    """Return the (top, right, bottom, left) edge lengths of *quad*."""
    tl, tr, br, bl = as_quad(quad)
    top = float(np.hypot(*(tr - tl)))
    right = float(np.hypot(*(br - tr)))
    bottom = float(np.hypot(*(br - bl)))
    left = float(np.hypot(*(bl - tl)))
    return top, right, bottom, left


def centroid(quad):
    cx, cy = as_quad(quad).mean(axis=0)
    return float(cx), float(cy)


def default_corners(width: int, height: int, inset_ratio: float = 0.04) -> np.ndarray:
    """Seed quad for a freshly loaded image.

    The corners sit ``round(min(width, height) * inset_ratio)`` pixels in
    from every border so the handles start inside the picture.

    Parameters
    ----------
    width, height : int
        Source image size in pixels.
    inset_ratio : float
        Inset as a fraction of the shorter image side.

    Returns
    -------
    np.ndarray
        4 x 2 corners in TL, TR, BR, BL order.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"image size must be positive, got {width} x {height}")
    inset = round_half_up(min(width, height) * inset_ratio)
    return np.array([
        [inset,         inset         ],
        [width - inset, inset         ],
        [width - inset, height - inset],
        [inset,         height - inset],
    ], dtype=float)


def clamp_point(point, width: float, height: float):
    """Clamp a corner into ``[0, width] x [0, height]``.

    Corners may sit on the far border (``x == width``), which is where a
    handle dragged to the image edge ends up.
    """
    x, y = float(point[0]), float(point[1])
    return min(float(width), max(0.0, x)), min(float(height), max(0.0, y))


def move_corner(quad, index: int, point, width: float, height: float) -> np.ndarray:
    """Return a copy of *quad* with corner *index* moved to the clamped *point*."""
    if not 0 <= index < 4:
        raise ValueError(f"corner index must be in [0, 3], got {index}")
    moved = as_quad(quad)
    moved[index] = clamp_point(point, width, height)
    return moved
