"""
Failure taxonomy for a crop attempt.

Every geometric failure is deterministic: the same corners over the same
image always fail the same way, so none of these should be retried without
changed input.  All of them derive from :class:`CropError`, which is itself a
``ValueError`` so callers that treat bad geometry as bad input keep working.
"""


class CropError(ValueError):
    """Base class for every failure of a rectification pass."""


class InvalidQuad(CropError):
    """Corners are degenerate, self-intersecting or wound inconsistently.

    User-correctable: prompt for corner adjustment.
    """


class SingularTransform(CropError):
    """The 8 x 8 homography system has no unique solution."""


class SingularMatrix(CropError):
    """The forward transform collapses space and cannot be inverted."""


class AtInfinity(CropError):
    """A homogeneous point has (numerically) zero weight."""


class CropCancelled(CropError):
    """The pass was cancelled cooperatively; no partial output exists."""
