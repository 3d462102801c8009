"""
Homogeneous-coordinate projection.

A 2-D point ``(x, y)`` is lifted to ``(x, y, 1)``, multiplied by a 3x3
transform, and brought back to the plane by the perspective divide.  A
near-zero weight ``w`` means the point lies at infinity and has no pixel
position.
"""

import numpy as np

from quadcrop.errors import AtInfinity

W_EPS = 1e-12


def project(m: np.ndarray, p) -> np.ndarray:
    """Raw matrix-vector product ``m @ (x, y, w)``; no divide."""
    hp = np.asarray(p, dtype=float)
    if hp.shape != (3,):
        raise ValueError(f"expected a homogeneous point (x, y, w), received shape {hp.shape}")
    return np.asarray(m, dtype=float) @ hp


def to_point(hp):
    """Perspective divide: ``(x, y, w) -> (x / w, y / w)``.

    Raises
    ------
    AtInfinity
        If ``|w|`` is below :data:`W_EPS`.
    """
    x, y, w = (float(v) for v in hp)
    if abs(w) < W_EPS:
        raise AtInfinity(f"homogeneous weight {w:.3e} is zero; point is at infinity")
    return x / w, y / w


def apply_homography(H: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a homography to a batch of (x, y) points.

    Parameters
    ----------
    H : np.ndarray
        3 x 3 transform.
    points : np.ndarray
        N x 2 array of (x, y) coordinates.

    Returns
    -------
    np.ndarray
        N x 2 array of transformed (x, y) coordinates.

    Raises
    ------
    AtInfinity
        If any point maps to a near-zero weight.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    homog = np.hstack([pts, np.ones((pts.shape[0], 1))]).T

    transformed = np.asarray(H, dtype=float) @ homog
    w = transformed[2]
    if np.any(np.abs(w) < W_EPS):
        raise AtInfinity("a point maps to infinity under this transform")

    return (transformed[:2] / w).T
