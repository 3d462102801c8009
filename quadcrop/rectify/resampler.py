"""
Perspective rectification via inverse warping.

Given the four corners a user marked on a photographed page, the output
size is chosen from the quad's average edge lengths, the homography from
the quad onto that rectangle is solved and inverted, and every output pixel
is mapped back into the source and sampled with bilinear interpolation.

Output pixels do not depend on each other, so the raster can be split into
row bands and filled by several threads; each band owns its rows of the
destination and only reads the shared source and inverse transform.
"""

import concurrent.futures

import numpy as np

from quadcrop.errors import CropCancelled, InvalidQuad
from quadcrop.geometry.homography import canonical_rectangle, compute_homography
from quadcrop.geometry.inverse import invert_3x3
from quadcrop.geometry.projection import apply_homography
from quadcrop.geometry.quad import as_quad, edge_lengths, is_valid_quad, round_half_up
from quadcrop.sampling.bilinear import bilinear_sample_many, check_pixel_buffer


def target_size(quad) -> tuple:
    """Pick the rectified size from the quad's edge lengths.

    Width is the rounded mean of the top and bottom edges, height the rounded
    mean of the left and right edges; neither drops below one pixel.

    Returns
    -------
    (width, height) : tuple of int
    """
    top, right, bottom, left = edge_lengths(quad)
    width = max(1, round_half_up((top + bottom) / 2))
    height = max(1, round_half_up((left + right) / 2))
    return width, height


def _allocate_destination(height: int, width: int, channels: int) -> np.ndarray:
    return np.zeros((height, width, channels), dtype=np.uint8)


def _split_rows(height: int, workers: int) -> list:
    return [band for band in np.array_split(np.arange(height), min(workers, height)) if band.size]


def _resample_rows(source: np.ndarray, H_inv: np.ndarray, dest: np.ndarray,
                   rows, cancel_event=None) -> None:
    """Fill *rows* of *dest* by sampling *source* through *H_inv*."""
    width = dest.shape[1]
    cols = np.arange(width, dtype=float)

    for j in rows:
        if cancel_event is not None and cancel_event.is_set():
            raise CropCancelled("rectification cancelled")

        # Destination pixels (i, j) for every column i, mapped back to source
        p_out = np.column_stack([cols, np.full(width, float(j))])
        p_in = apply_homography(H_inv, p_out)
        dest[j] = bilinear_sample_many(source, p_in[:, 0], p_in[:, 1])


def rectify(source: np.ndarray, quad, workers: int = 1, cancel_event=None) -> np.ndarray:
    """Rectify the region of *source* bounded by *quad* into a rectangle.

    Parameters
    ----------
    source : np.ndarray
        H x W x 4 uint8 RGBA image.  Read only; must not change during the
        pass.
    quad : array-like
        4 x 2 (x, y) corners in TL, TR, BR, BL order, in source pixels.
    workers : int
        Number of row bands filled concurrently.  1 runs in the caller's
        thread.
    cancel_event : threading.Event, optional
        Checked before every output row; once set the pass stops and the
        partial output is dropped.

    Returns
    -------
    np.ndarray
        Rectified image, shape ``(height, width, channels)`` with the size
        given by :func:`target_size`.

    Raises
    ------
    InvalidQuad
        If *quad* fails :func:`is_valid_quad`.  Nothing is allocated.
    SingularTransform, SingularMatrix
        If the homography cannot be solved or inverted.
    AtInfinity
        If an output pixel maps to a point at infinity.
    CropCancelled
        If *cancel_event* was set.
    """
    check_pixel_buffer(source)
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    if not is_valid_quad(quad):
        raise InvalidQuad(
            "corners are degenerate, self-intersecting or wound inconsistently; "
            "adjust the corners"
        )

    src_quad = as_quad(quad)
    width, height = target_size(src_quad)
    H = compute_homography(src_quad, canonical_rectangle(width, height))
    H_inv = invert_3x3(H)

    print(f"  Output size: {width} x {height} px")
    dest = _allocate_destination(height, width, source.shape[2])
    bands = _split_rows(height, workers)

    if len(bands) == 1:
        _resample_rows(source, H_inv, dest, bands[0], cancel_event)
        return dest

    with concurrent.futures.ThreadPoolExecutor(max_workers=len(bands)) as executor:
        futures = [
            executor.submit(_resample_rows, source, H_inv, dest, band, cancel_event)
            for band in bands
        ]
        for future in concurrent.futures.as_completed(futures):
            future.result()

    return dest
