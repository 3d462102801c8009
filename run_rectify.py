#!/usr/bin/env python3
"""
run_rectify.py – Four-Corner Perspective Rectification

Loads configuration from configs/default.yaml (or a user-specified file),
rectifies every job defined in the config, and writes the rectified PNGs and
diagnostic figures to the results directory.

Usage
-----
    python run_rectify.py
    python run_rectify.py --config configs/default.yaml
    python run_rectify.py --jobs receipt whiteboard
    python run_rectify.py --workers 4 --no-figures
    python run_rectify.py --image page.jpg --corners 12,30 610,18 640,820 5,790
"""

import argparse
import os
import sys
import time

import yaml

# Ensure the project root is on the Python path when invoked directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from quadcrop.errors import CropError
from quadcrop.geometry.quad import as_quad, clamp_point, default_corners, is_valid_quad
from quadcrop.rectify.resampler import rectify
from quadcrop.utils.image_io import load_rgba, save_png, ensure_output_dirs
from quadcrop.utils.visualization import save_quad_overlay, save_rectified


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_config(path: str) -> dict:
    with open(path, "r") as fh:
        return yaml.safe_load(fh) or {}


def banner(text: str) -> None:
    width = 60
    print("\n" + "─" * width)
    print(f"  {text}")
    print("─" * width)


def parse_point(text: str):
    """Parse ``"x,y"`` (optionally parenthesised) into a float pair."""
    stripped = text.strip()
    if stripped.startswith("(") and stripped.endswith(")"):
        stripped = stripped[1:-1]
    pieces = stripped.replace(",", " ").split()
    if len(pieces) != 2:
        raise argparse.ArgumentTypeError(f"could not parse point from '{text}'")
    try:
        x, y = (float(piece) for piece in pieces)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc
    return x, y


# ──────────────────────────────────────────────────────────────────────────────
# Per-job pipeline
# ──────────────────────────────────────────────────────────────────────────────

def run_job(job_cfg: dict, cfg: dict, results_dir: str, workers: int,
            figures: bool) -> dict:
    """Rectify a single job and return summary metrics."""
    name = job_cfg["name"]
    banner(f"Job: {name}")
    t0 = time.time()

    metrics = {
        "job": name,
        "source": "–",
        "output": None,
        "status": "ok",
        "elapsed": None,
    }

    # ── 1. Load image ─────────────────────────────────────────────────────────
    try:
        image = load_rgba(job_cfg["image"])
    except OSError as exc:
        # PIL.UnidentifiedImageError is an OSError
        print(f"  Cannot decode image – {exc}")
        metrics["status"] = "UnreadableImage"
        metrics["elapsed"] = time.time() - t0
        return metrics
    h, w = image.shape[:2]
    metrics["source"] = f"{w}×{h}"
    print(f"  Loaded image  {w}×{h}")

    # ── 2. Corners ────────────────────────────────────────────────────────────
    if job_cfg.get("corners") is not None:
        marked = as_quad(job_cfg["corners"])
        quad = as_quad([clamp_point(p, w, h) for p in marked])
        if (quad != marked).any():
            print("  Corners outside the image were clamped to its border")
    else:
        quad = default_corners(w, h, cfg.get("inset_ratio", 0.04))
        print("  No corners given – seeded inside the image border")
    for label, (x, y) in zip(("TL", "TR", "BR", "BL"), quad):
        print(f"    {label}: ({x:.1f}, {y:.1f})")

    # ── 3. Validation ─────────────────────────────────────────────────────────
    print("  Stage 1 – Quad validation")
    valid = is_valid_quad(quad)
    print(f"    Quad is {'valid' if valid else 'INVALID – adjust the corners'}")
    if figures:
        save_quad_overlay(image, quad, name, results_dir,
                          divisions=cfg.get("grid_divisions", 10))
    if not valid:
        # Never hand an invalid quad to the resampler
        metrics["status"] = "InvalidQuad"
        metrics["elapsed"] = time.time() - t0
        return metrics

    # ── 4. Rectification ──────────────────────────────────────────────────────
    print(f"  Stage 2 – Rectification ({workers} worker{'s' if workers != 1 else ''})")
    try:
        rectified = rectify(image, quad, workers=workers)
    except CropError as exc:
        print(f"  Crop failed – {type(exc).__name__}: {exc}")
        metrics["status"] = type(exc).__name__
        metrics["elapsed"] = time.time() - t0
        return metrics

    out_path = os.path.join(results_dir, name, "rectified.png")
    save_png(rectified, out_path)
    print(f"  Saved rectified image → {out_path}")
    if figures:
        save_rectified(image, quad, rectified, name, results_dir)

    metrics["output"] = f"{rectified.shape[1]}×{rectified.shape[0]}"
    metrics["elapsed"] = time.time() - t0
    return metrics


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Rectify a four-corner region of a photographed document"
    )
    p.add_argument(
        "--config", default="configs/default.yaml",
        help="Path to YAML configuration file (default: configs/default.yaml)",
    )
    p.add_argument(
        "--jobs", nargs="*", default=None,
        help="Subset of job names to process (default: all jobs in config)",
    )
    p.add_argument(
        "--workers", type=int, default=None,
        help="Row bands rectified concurrently (default: config value or 1)",
    )
    p.add_argument(
        "--no-figures", action="store_true",
        help="Skip the quad overlay and comparison figures",
    )
    p.add_argument(
        "--image", default=None,
        help="Rectify a single image instead of the configured jobs",
    )
    p.add_argument(
        "--corners", nargs=4, type=parse_point, metavar="x,y", default=None,
        help="TL TR BR BL corners for --image (default: seeded from the image size)",
    )
    p.add_argument(
        "--name", default=None,
        help="Job name for --image (default: the image file stem)",
    )
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if args.corners is not None and args.image is None:
        print("[ERROR] --corners requires --image")
        sys.exit(1)

    if args.image is not None:
        # Single-image mode; the config file is optional
        cfg = load_config(args.config) if os.path.exists(args.config) else {}
        name = args.name or os.path.splitext(os.path.basename(args.image))[0]
        jobs = [{"name": name, "image": args.image, "corners": args.corners}]
    else:
        if not os.path.exists(args.config):
            print(f"[ERROR] Config file not found: {args.config}")
            sys.exit(1)
        cfg = load_config(args.config)
        jobs = cfg.get("jobs") or []

        # Optionally restrict to a subset of jobs
        if args.jobs:
            jobs = [j for j in jobs if j.get("name") in args.jobs]
            if not jobs:
                print(f"[ERROR] No matching jobs found for: {args.jobs}")
                sys.exit(1)

    # Validate job entries before touching any image
    for job in jobs:
        if "name" not in job or "image" not in job:
            print(f"[ERROR] Job entry needs 'name' and 'image': {job}")
            sys.exit(1)
        if not os.path.exists(job["image"]):
            print(f"[ERROR] Image not found: {job['image']}")
            sys.exit(1)
        if job.get("corners") is not None:
            try:
                as_quad(job["corners"])
            except ValueError as exc:
                print(f"[ERROR] Bad corners for job '{job['name']}': {exc}")
                sys.exit(1)

    results_dir = cfg.get("results_dir", "results")
    workers = args.workers if args.workers is not None else cfg.get("workers", 1)
    try:
        workers = int(workers)
    except (TypeError, ValueError):
        print(f"[ERROR] workers must be an integer, got {workers!r}")
        sys.exit(1)
    if workers < 1:
        print(f"[ERROR] workers must be at least 1, got {workers}")
        sys.exit(1)
    figures = cfg.get("figures", True) and not args.no_figures

    # Create output directories
    ensure_output_dirs([j["name"] for j in jobs], base=results_dir)

    banner("Four-Corner Perspective Rectification")
    print(f"  Config  : {args.config if args.image is None else '(single image)'}")
    print(f"  Jobs    : {[j['name'] for j in jobs]}")
    print(f"  Workers : {workers}")
    print(f"  Figures : {'enabled' if figures else 'disabled'}")
    print(f"  Output  : {results_dir}/")

    t0 = time.time()
    all_metrics = []

    for job in jobs:
        metrics = run_job(job, cfg, results_dir, workers, figures)
        all_metrics.append(metrics)

    # ── Summary table ──────────────────────────────────────────────────────
    banner("Results Summary")
    header = f"{'Job':<16} {'Source':>11} {'Output':>11} {'Status':>18} {'Time':>7}"
    print(header)
    print("─" * len(header))
    for m in all_metrics:
        out = m["output"] if m["output"] is not None else "–"
        print(f"{m['job']:<16} {m['source']:>11} {out:>11} "
              f"{m['status']:>18} {m['elapsed']:>6.2f}s")

    elapsed = time.time() - t0
    print(f"\nRectification complete in {elapsed:.1f}s")
    print(f"Results saved to: {os.path.abspath(results_dir)}/")
    return all_metrics


if __name__ == "__main__":
    main()
