"""
Homography estimation from four point correspondences.

A planar homography (projective transformation) maps the quadrilateral a
user marks on a photographed page onto an axis-aligned rectangle.  With
``H[2, 2]`` fixed to 1 the matrix has eight unknowns; the Direct Linear
Transform (DLT) turns four correspondences into an 8 x 8 linear system that
is solved by Gaussian elimination with partial pivoting.
"""

import numpy as np

from quadcrop.errors import SingularTransform
from quadcrop.geometry.quad import as_quad

# Pivots smaller than this fraction of the largest coefficient mean the
# system's determinant is numerically zero.
SINGULAR_EPS = 1e-12


def canonical_rectangle(width: int, height: int) -> np.ndarray:
    """Destination quad ``(0,0), (w,0), (w,h), (0,h)`` for a *width* x *height* output."""
    if width <= 0 or height <= 0:
        raise ValueError(f"rectangle size must be positive, got {width} x {height}")
    return np.array([
        [0,     0     ],
        [width, 0     ],
        [width, height],
        [0,     height],
    ], dtype=float)


def _solve_linear(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``A x = b`` by Gaussian elimination with partial pivoting."""
    n = A.shape[0]
    M = np.hstack([A, b.reshape(-1, 1)]).astype(float)
    tol = SINGULAR_EPS * max(1.0, float(np.max(np.abs(A))))

    for col in range(n):
        pivot = col + int(np.argmax(np.abs(M[col:, col])))
        if abs(M[pivot, col]) < tol:
            raise SingularTransform(
                "homography system is singular; the corners cannot determine "
                "a unique projective map"
            )
        if pivot != col:
            M[[col, pivot]] = M[[pivot, col]]

        M[col] = M[col] / M[col, col]
        M[col + 1:] -= M[col + 1:, col:col + 1] * M[col]

    x = np.zeros(n)
    for row in range(n - 1, -1, -1):
        x[row] = M[row, n] - M[row, row + 1:n] @ x[row + 1:]
    return x


def compute_homography(src, dst) -> np.ndarray:
    """Estimate the 3x3 homography mapping *src* corners onto *dst* corners.

    Each correspondence ``(x, y) -> (u, v)`` contributes two rows::

        [x, y, 1, 0, 0, 0, -u*x, -u*y] . h = u
        [0, 0, 0, x, y, 1, -v*x, -v*y] . h = v

    giving an 8 x 8 system in the entries ``h11 .. h32``.

    Parameters
    ----------
    src : array-like
        4 x 2 (x, y) source corners.
    dst : array-like
        4 x 2 (x, y) destination corners.  Usually
        :func:`canonical_rectangle`, but any quad is accepted.

    Returns
    -------
    H : np.ndarray
        3 x 3 homography (``H[2, 2] == 1``) with ``dst[i] ≅ H @ src[i]``.

    Raises
    ------
    SingularTransform
        If the corners do not determine a unique transform, e.g. when the
        source points are collinear.
    """
    src = as_quad(src)
    dst = as_quad(dst)

    A = []
    b = []
    for (x, y), (u, v) in zip(src, dst):
        A.append([x, y, 1, 0, 0, 0, -u * x, -u * y])
        A.append([0, 0, 0, x, y, 1, -v * x, -v * y])
        b.extend([u, v])

    h = _solve_linear(np.array(A, dtype=float), np.array(b, dtype=float))
    return np.append(h, 1.0).reshape(3, 3)
