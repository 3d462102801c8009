"""
Image I/O helpers.

Thin wrappers around PIL for decoding photographs into RGBA pixel buffers,
encoding rectified buffers as PNG, and output directory management.
"""

import os
import numpy as np
from PIL import Image


def load_rgba(path: str) -> np.ndarray:
    """Load an image file as a uint8 RGBA array.

    Parameters
    ----------
    path : str
        File path of any format Pillow can decode.

    Returns
    -------
    np.ndarray
        H x W x 4 uint8 array.
    """
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


def save_png(buffer: np.ndarray, path: str) -> None:
    """Encode an H x W x 4 (or x 3) uint8 buffer as a PNG file."""
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4) or buffer.dtype != np.uint8:
        raise ValueError(f"cannot encode {buffer.dtype} buffer of shape {buffer.shape} as PNG")
    # Pillow infers RGB / RGBA from the channel count
    Image.fromarray(np.ascontiguousarray(buffer)).save(path, format="PNG")


def ensure_output_dirs(names: list, base: str = "results") -> None:
    """Create output subdirectories for each job name.

    Parameters
    ----------
    names : list of str
        Job identifiers (one subdirectory is created per job).
    base : str
        Root output directory.
    """
    for name in names:
        os.makedirs(os.path.join(base, name), exist_ok=True)
