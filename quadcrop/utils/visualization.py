"""
Diagnostic figures for the rectification pipeline.

All functions save figures to disk rather than displaying them interactively,
making the module suitable for headless execution.
"""

import os
import numpy as np
import matplotlib
matplotlib.use("Agg")          # non-interactive backend
import matplotlib.pyplot as plt

from quadcrop.geometry.quad import as_quad, centroid, is_valid_quad


def _lerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    return a + (b - a) * t


# ---------------------------------------------------------------------------
# Corner placement
# ---------------------------------------------------------------------------

def save_quad_overlay(image: np.ndarray, quad, name: str, out_dir: str,
                      divisions: int = 10) -> str:
    """Save *image* with the quad outline and its interior grid drawn on top.

    The grid splits the quad into *divisions* x *divisions* cells by linear
    interpolation along opposite edges.  A valid quad is drawn in white; an
    invalid one in red with a label at its centroid.

    Returns
    -------
    str
        Path of the written figure.
    """
    pts = as_quad(quad)
    valid = is_valid_quad(pts)
    colour = "white" if valid else "red"
    divisions = max(1, int(divisions))
    tl, tr, br, bl = pts

    fig, ax = plt.subplots(figsize=(10, 10))
    ax.imshow(image)

    outline = np.vstack([pts, pts[:1]])
    ax.plot(outline[:, 0], outline[:, 1], "-", color=colour,
            linewidth=2 if valid else 3, alpha=0.8)

    for i in range(1, divisions):
        t = i / divisions
        left, right = _lerp(tl, bl, t), _lerp(tr, br, t)
        top, bottom = _lerp(tl, tr, t), _lerp(bl, br, t)
        ax.plot([left[0], right[0]], [left[1], right[1]], "-", color=colour,
                linewidth=1, alpha=0.4 if valid else 0.6)
        ax.plot([top[0], bottom[0]], [top[1], bottom[1]], "-", color=colour,
                linewidth=1, alpha=0.4 if valid else 0.6)

    ax.plot(pts[:, 0], pts[:, 1], "o", markersize=10, markerfacecolor="none",
            markeredgecolor=(0.0, 1.0, 0.5), markeredgewidth=2)

    if not valid:
        cx, cy = centroid(pts)
        ax.text(cx, cy, "invalid quad", color="yellow", fontsize=12, weight="bold",
                ha="center", bbox=dict(boxstyle="round,pad=0.3", facecolor="black", alpha=0.5))

    ax.set_title(f"{name} – corners ({'valid' if valid else 'invalid'})")
    ax.axis("off")
    plt.tight_layout()
    path = os.path.join(out_dir, name, "quad_overlay.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

def save_rectified(image: np.ndarray, quad, rectified: np.ndarray,
                   name: str, out_dir: str) -> str:
    """Save a side-by-side figure of the marked source and the rectified result."""
    pts = as_quad(quad)
    outline = np.vstack([pts, pts[:1]])

    fig, axes = plt.subplots(1, 2, figsize=(16, 8))
    axes[0].imshow(image)
    axes[0].plot(outline[:, 0], outline[:, 1], "g-", linewidth=2)
    axes[0].set_title(f"{name} – source {image.shape[1]}×{image.shape[0]}")
    axes[0].axis("off")

    axes[1].imshow(rectified)
    axes[1].set_title(f"Rectified {rectified.shape[1]}×{rectified.shape[0]}")
    axes[1].axis("off")

    plt.tight_layout()
    path = os.path.join(out_dir, name, "comparison.jpg")
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
