import argparse
import os

import numpy as np
import pytest
import yaml
from PIL import Image

import run_rectify


def write_image(path, width=200, height=100, colour=(40, 120, 220, 255)):
    img = np.empty((height, width, 4), dtype=np.uint8)
    img[:, :] = colour
    Image.fromarray(img).save(path)
    return str(path)


def write_config(path, results_dir, jobs, **extra):
    cfg = {"results_dir": str(results_dir), "jobs": jobs}
    cfg.update(extra)
    path.write_text(yaml.safe_dump(cfg))
    return str(path)


def test_parse_point():
    assert run_rectify.parse_point("12,30.5") == (12.0, 30.5)
    assert run_rectify.parse_point("(3, 4)") == (3.0, 4.0)
    with pytest.raises(argparse.ArgumentTypeError):
        run_rectify.parse_point("1,2,3")
    with pytest.raises(argparse.ArgumentTypeError):
        run_rectify.parse_point("a,b")


def test_config_job_writes_rectified_png(tmp_path):
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "page", "image": image,
         "corners": [[10, 10], [190, 10], [170, 90], [30, 90]]},
    ])

    metrics = run_rectify.main(["--config", config, "--no-figures"])

    out = np.array(Image.open(results / "page" / "rectified.png"))
    # top 180, bottom 140 -> 160; sides hypot(20, 80) -> 82
    assert out.shape == (82, 160, 4)
    assert (out == (40, 120, 220, 255)).all()
    assert metrics[0]["status"] == "ok"
    assert metrics[0]["output"] == "160×82"
    assert not (results / "page" / "quad_overlay.jpg").exists()


def test_figures_are_written(tmp_path):
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "page", "image": image,
         "corners": [[10, 10], [190, 10], [190, 90], [10, 90]]},
    ], grid_divisions=4)

    run_rectify.main(["--config", config])

    assert (results / "page" / "quad_overlay.jpg").exists()
    assert (results / "page" / "comparison.jpg").exists()


def test_invalid_quad_is_reported_and_other_jobs_continue(tmp_path, monkeypatch):
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "bowtie", "image": image,
         "corners": [[10, 10], [190, 10], [10, 90], [190, 90]]},
        {"name": "good", "image": image,
         "corners": [[10, 10], [190, 10], [190, 90], [10, 90]]},
    ])
    rectified_quads = []
    real_rectify = run_rectify.rectify

    def recording_rectify(source, quad, **kwargs):
        rectified_quads.append(np.array(quad))
        return real_rectify(source, quad, **kwargs)

    monkeypatch.setattr(run_rectify, "rectify", recording_rectify)

    metrics = run_rectify.main(["--config", config])

    assert [m["status"] for m in metrics] == ["InvalidQuad", "ok"]
    # The resampler only ever sees the valid job's corners
    assert len(rectified_quads) == 1
    np.testing.assert_array_equal(rectified_quads[0], [[10, 10], [190, 10], [190, 90], [10, 90]])
    assert not (results / "bowtie" / "rectified.png").exists()
    assert (results / "bowtie" / "quad_overlay.jpg").exists()
    assert (results / "good" / "rectified.png").exists()


def test_undecodable_image_is_reported_and_other_jobs_continue(tmp_path):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"definitely not a png")
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "broken", "image": str(broken)},
        {"name": "good", "image": image},
    ])

    metrics = run_rectify.main(["--config", config, "--no-figures"])

    assert [m["status"] for m in metrics] == ["UnreadableImage", "ok"]
    assert metrics[0]["output"] is None
    assert not (results / "broken" / "rectified.png").exists()
    assert (results / "good" / "rectified.png").exists()


def test_workers_from_config_are_coerced(tmp_path):
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "page", "image": image},
    ], workers="3")

    metrics = run_rectify.main(["--config", config, "--no-figures"])

    assert metrics[0]["status"] == "ok"
    assert (results / "page" / "rectified.png").exists()


@pytest.mark.parametrize("workers", ["four", None, 0])
def test_bad_workers_in_config_exit(tmp_path, workers):
    image = write_image(tmp_path / "page.png")
    config = write_config(tmp_path / "cfg.yaml", tmp_path / "results", [
        {"name": "page", "image": image},
    ], workers=workers)
    with pytest.raises(SystemExit) as exc:
        run_rectify.main(["--config", config])
    assert exc.value.code == 1


def test_job_subset(tmp_path):
    image = write_image(tmp_path / "page.png")
    results = tmp_path / "results"
    config = write_config(tmp_path / "cfg.yaml", results, [
        {"name": "a", "image": image},
        {"name": "b", "image": image},
    ])

    metrics = run_rectify.main(["--config", config, "--jobs", "b", "--no-figures"])

    assert [m["job"] for m in metrics] == ["b"]
    assert not (results / "a").exists()


def test_single_image_mode_seeds_corners(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    write_image(tmp_path / "scan.png", width=200, height=100)

    metrics = run_rectify.main(["--image", "scan.png", "--no-figures", "--workers", "2"])

    # inset round(100 * 0.04) = 4 on every side
    out = np.array(Image.open(os.path.join("results", "scan", "rectified.png")))
    assert out.shape == (92, 192, 4)
    assert metrics[0]["job"] == "scan"


def test_single_image_mode_clamps_corners(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    write_image(tmp_path / "scan.png", width=200, height=100)

    run_rectify.main(["--image", "scan.png", "--name", "clamped", "--no-figures",
                      "--corners", "0,-5", "250,0", "200,130", "0,100"])

    out = np.array(Image.open(os.path.join("results", "clamped", "rectified.png")))
    assert out.shape == (100, 200, 4)


def test_missing_config_exits(tmp_path):
    with pytest.raises(SystemExit) as exc:
        run_rectify.main(["--config", str(tmp_path / "nope.yaml")])
    assert exc.value.code == 1


def test_missing_image_exits(tmp_path):
    config = write_config(tmp_path / "cfg.yaml", tmp_path / "results", [
        {"name": "gone", "image": str(tmp_path / "gone.png")},
    ])
    with pytest.raises(SystemExit) as exc:
        run_rectify.main(["--config", config])
    assert exc.value.code == 1


def test_bad_corner_shape_exits(tmp_path):
    image = write_image(tmp_path / "page.png")
    config = write_config(tmp_path / "cfg.yaml", tmp_path / "results", [
        {"name": "three", "image": image, "corners": [[0, 0], [1, 0], [1, 1]]},
    ])
    with pytest.raises(SystemExit) as exc:
        run_rectify.main(["--config", config])
    assert exc.value.code == 1


def test_corners_without_image_exits():
    with pytest.raises(SystemExit) as exc:
        run_rectify.main(["--corners", "0,0", "1,0", "1,1", "0,1"])
    assert exc.value.code == 1
