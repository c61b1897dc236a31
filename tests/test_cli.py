"""命令行入口的冒烟测试。"""

from __future__ import annotations

from pathlib import Path

from PIL import Image
from typer.testing import CliRunner

from image_optimizer.cli.main import app

runner = CliRunner()


def test_formats_command() -> None:
    result = runner.invoke(app, ["formats"])

    assert result.exit_code == 0
    assert result.stdout.split() == ["png", "webp", "jpeg", "tiff", "qoi", "bmp"]


def test_run_command_converts_directory(tmp_path: Path) -> None:
    source = tmp_path / "input"
    source.mkdir()
    Image.new("RGB", (120, 60), "orange").save(source / "a.png")
    Image.new("RGB", (50, 50), "blue").save(source / "b.bmp")
    output = tmp_path / "output"

    result = runner.invoke(
        app,
        [
            "run",
            str(source),
            "--output",
            str(output),
            "--mode",
            "all",
            "--format",
            "webp",
            "--max-width",
            "60",
            "--max-height",
            "60",
            "--report",
            "report.csv",
        ],
    )

    assert result.exit_code == 0, result.output
    assert (output / "a_processed.webp").exists()
    assert (output / "b_processed.webp").exists()
    assert (output / "report.csv").exists()
    with Image.open(output / "a_processed.webp") as img:
        assert img.size == (60, 30)


def test_run_command_with_backup(tmp_path: Path) -> None:
    source = tmp_path / "photo.png"
    Image.new("RGB", (20, 20), "red").save(source)

    result = runner.invoke(app, ["run", str(source), "--overwrite", "--backup", "--mode", "convert"])

    assert result.exit_code == 0, result.output
    backups = list((tmp_path / ".image_optimizer_backups").glob("*_photo.png"))
    assert len(backups) == 1


def test_run_command_fails_on_bad_input(tmp_path: Path) -> None:
    broken = tmp_path / "broken.png"
    broken.write_text("not an image")

    result = runner.invoke(app, ["run", str(broken), "--output", str(tmp_path / "out")])

    assert result.exit_code == 1


def test_probe_and_scan_commands(tmp_path: Path) -> None:
    Image.new("RGB", (12, 7)).save(tmp_path / "img.png")

    probe = runner.invoke(app, ["probe", str(tmp_path / "img.png")])
    scan = runner.invoke(app, ["scan", str(tmp_path)])

    assert probe.exit_code == 0
    assert probe.stdout.strip() == "12x7"
    assert scan.exit_code == 0
    assert scan.stdout.strip() == str(tmp_path / "img.png")
