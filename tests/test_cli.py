"""Tests for the watermark-stack command line entry point."""

import numpy as np
import torch

from watermark_stack.cli.extract_watermark import main
from watermark_stack.models.pixel_network import PixelNetwork
from watermark_stack.models.watermark_mode import ModelKey
from watermark_stack.repositories.image_repository import ImageRepository
from watermark_stack.repositories.model_repository import ModelRepository


def _write_frames(directory, count=6, size=8):
    repo = ImageRepository()
    rng = np.random.default_rng(0)
    directory.mkdir()
    for i in range(count):
        pixels = np.full((size, size, 3), rng.random(3), dtype=np.float32)
        pixels[2:4, 3:6] = 0.6 * 1.0 + 0.4 * pixels[2:4, 3:6]
        repo.save(pixels, directory / f"frame_{i}.png")
    (directory / "readme.txt").write_text("not an image")


def _write_models(model_dir, stack_size):
    torch.manual_seed(0)
    repo = ModelRepository(model_dir)
    repo.save(ModelKey.for_mode("localize", "white"), PixelNetwork(3 * stack_size, 1))
    repo.save(ModelKey.for_mode("extract", "white"), PixelNetwork(3 * stack_size, 4))


def test_cli_writes_results(tmp_path, capsys) -> None:
    _write_frames(tmp_path / "frames")
    _write_models(tmp_path / "models", 5)
    out_dir = tmp_path / "out"

    code = main([
        str(tmp_path / "frames"),
        "--out-dir", str(out_dir),
        "--stack-size", "5",
        "--mode", "white",
        "--model-dir", str(tmp_path / "models"),
        "--device", "cpu",
        "--seed", "1",
        "--remove",
    ])

    assert code == 0
    assert (out_dir / "position.png").exists()
    assert (out_dir / "watermark.png").exists()
    assert sorted(p.name for p in (out_dir / "cleaned").iterdir()) == [f"frame_{i}_clean.png" for i in range(6)]
    assert "Results written to" in capsys.readouterr().out


def test_cli_reports_too_few_frames(tmp_path, capsys) -> None:
    _write_frames(tmp_path / "frames", count=2)

    code = main([str(tmp_path / "frames"), "--stack-size", "5", "--out-dir", str(tmp_path / "out")])

    assert code == 1
    err = capsys.readouterr().err
    assert err.startswith("error:")
    assert "At least 5" in err


def test_cli_reports_missing_models(tmp_path, capsys) -> None:
    _write_frames(tmp_path / "frames")

    code = main([
        str(tmp_path / "frames"),
        "--stack-size", "5",
        "--mode", "black",
        "--model-dir", str(tmp_path / "empty"),
        "--device", "cpu",
        "--out-dir", str(tmp_path / "out"),
    ])

    assert code == 1
    assert "not found" in capsys.readouterr().err
