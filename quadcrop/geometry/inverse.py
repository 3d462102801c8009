"""
Closed-form 3x3 matrix inversion.

Resampling walks the destination raster and needs the destination → source
transform, so the forward homography is flipped here with the adjugate
(transposed cofactor matrix) divided by the determinant.
"""

import numpy as np

from quadcrop.errors import SingularMatrix

# |det| below this fraction of the Hadamard bound (product of row norms)
# counts as zero.  The ratio does not change when the matrix is rescaled.
INVERSE_EPS = 1e-12


def _as_matrix(m) -> np.ndarray:
    arr = np.asarray(m, dtype=float)
    if arr.shape != (3, 3):
        raise ValueError(f"expected a 3 x 3 matrix, received shape {arr.shape}")
    return arr


def determinant_3x3(m) -> float:
    """Determinant by cofactor expansion along the first row."""
    a = _as_matrix(m)
    return float(
        a[0, 0] * (a[1, 1] * a[2, 2] - a[1, 2] * a[2, 1])
        - a[0, 1] * (a[1, 0] * a[2, 2] - a[1, 2] * a[2, 0])
        + a[0, 2] * (a[1, 0] * a[2, 1] - a[1, 1] * a[2, 0])
    )


def invert_3x3(m) -> np.ndarray:
    """Invert a 3x3 matrix via its adjugate.

    Parameters
    ----------
    m : array-like
        3 x 3 matrix, typically a forward homography.

    Returns
    -------
    np.ndarray
        3 x 3 inverse, so that ``invert_3x3(m) @ m ≈ I``.

    Raises
    ------
    SingularMatrix
        If the determinant is numerically zero.
    """
    a = _as_matrix(m)
    det = determinant_3x3(a)
    bound = float(np.prod(np.linalg.norm(a, axis=1)))
    if bound == 0.0 or abs(det) < INVERSE_EPS * bound:
        raise SingularMatrix(f"matrix is singular (det={det:.3e}); transform cannot be reversed")

    # Cofactors laid out already transposed: adj[i, j] = C[j, i]
    adj = np.array([
        [a[1, 1] * a[2, 2] - a[1, 2] * a[2, 1],
         a[0, 2] * a[2, 1] - a[0, 1] * a[2, 2],
         a[0, 1] * a[1, 2] - a[0, 2] * a[1, 1]],
        [a[1, 2] * a[2, 0] - a[1, 0] * a[2, 2],
         a[0, 0] * a[2, 2] - a[0, 2] * a[2, 0],
         a[0, 2] * a[1, 0] - a[0, 0] * a[1, 2]],
        [a[1, 0] * a[2, 1] - a[1, 1] * a[2, 0],
         a[0, 1] * a[2, 0] - a[0, 0] * a[2, 1],
         a[0, 0] * a[1, 1] - a[0, 1] * a[1, 0]],
    ])
    return adj / det
