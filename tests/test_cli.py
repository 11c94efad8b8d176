from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from srcfmt.dem import DemoHeader, dumps_header
from demo2replay import config
from demo2replay.bundle import DIR_REPLAY, DIR_THUMBNAIL
from demo2replay.cli import app
from demo2replay.console import CONSOLE_LOG_NAME, ConsoleLog

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    monkeypatch.setenv(config.CONFIG_DIR_ENV, str(config_dir))
    monkeypatch.delenv(config.TF2_DIR_ENV, raising=False)
    monkeypatch.setattr("demo2replay.cli.locate_tf2", lambda: None)
    return config_dir


@pytest.fixture
def tf2_dir(tmp_path: Path) -> Path:
    root = tmp_path / "tf2"
    (root / DIR_REPLAY).mkdir(parents=True)
    (root / DIR_THUMBNAIL).mkdir(parents=True)
    return root


@pytest.fixture
def demo_file(tmp_path: Path) -> Path:
    header = DemoHeader(
        map="pl_badwater",
        player_nickname="Bob",
        server_name="Valve",
        duration_seconds=61.5,
        tick_count=4059,
    )
    path = tmp_path / "match.dem"
    path.write_bytes(dumps_header(header) + b"\x00" * 64)
    return path


def test_create_with_name_and_thumbnail(tf2_dir: Path, demo_file: Path, tmp_path: Path, isolated_config: Path) -> None:
    thumb = tmp_path / "shot.jpg"
    Image.new("RGB", (640, 480), (255, 255, 255)).save(thumb, format="JPEG")

    result = runner.invoke(
        app,
        ["create", str(demo_file), "--name", "Bob/uber push", "--thumbnail", str(thumb), "--tf2-dir", str(tf2_dir)],
    )

    assert result.exit_code == 0, result.output
    assert "created replay 'Bob/uber push' (handle 0)" in result.output
    assert (tf2_dir / DIR_REPLAY / "Bob_uber push.dmx").is_file()
    assert (tf2_dir / DIR_REPLAY / "Bob_uber push.dem").read_bytes() == demo_file.read_bytes()
    assert (tf2_dir / DIR_THUMBNAIL / "Bob_uber push.vmt").is_file()
    assert (tf2_dir / DIR_THUMBNAIL / "Bob_uber push.vtf").is_file()
    log_text = (isolated_config / CONSOLE_LOG_NAME).read_text(encoding="utf-8")
    assert "replay: created 'Bob_uber push' (handle 0)" in log_text


def test_create_default_name_uses_saved_tf2_dir(tf2_dir: Path, demo_file: Path) -> None:
    result = runner.invoke(app, ["set-tf2-dir", str(tf2_dir)])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["create", str(demo_file), "--verbose"])
    assert result.exit_code == 0, result.output
    assert "replay: loaded demo" in result.output
    (descriptor,) = list((tf2_dir / DIR_REPLAY).glob("*.dmx"))
    assert descriptor.name.endswith(" - Bob on pl_badwater.dmx")
    assert '"length"\t"61.5"' in descriptor.read_text(encoding="utf-8")


def test_create_without_tf2_dir_fails(demo_file: Path) -> None:
    result = runner.invoke(app, ["create", str(demo_file), "--name", "x"])
    assert result.exit_code == 1
    assert "No TF2 directory set" in result.output


def test_create_with_bad_demo_fails(tf2_dir: Path, tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.dem"
    bogus.write_bytes(b"not a demo at all")
    result = runner.invoke(app, ["create", str(bogus), "--tf2-dir", str(tf2_dir)])
    assert result.exit_code == 1
    assert "parsing demo header: invalid magic" in result.output
    assert list((tf2_dir / DIR_REPLAY).iterdir()) == []


def test_header_command(demo_file: Path) -> None:
    result = runner.invoke(app, ["header", str(demo_file)])
    assert result.exit_code == 0, result.output
    assert "map=pl_badwater" in result.output
    assert "nick=Bob" in result.output
    assert "duration=61.5" in result.output
    assert "ticks=4059" in result.output


def test_preview_command(tmp_path: Path) -> None:
    src = tmp_path / "wide.png"
    Image.new("RGB", (2048, 512), (0, 0, 255)).save(src)
    out = tmp_path / "preview" / "canvas.png"
    result = runner.invoke(app, ["preview", str(src), "--out", str(out)])
    assert result.exit_code == 0, result.output
    with Image.open(out) as img:
        assert img.size == (512, 512)
        assert img.getbbox() == (0, 0, 512, 128)


def test_preview_rejects_non_image(tmp_path: Path) -> None:
    src = tmp_path / "notes.txt"
    src.write_text("hello", encoding="utf-8")
    result = runner.invoke(app, ["preview", str(src), "--out", str(tmp_path / "x.png")])
    assert result.exit_code == 1
    assert "Failed to set thumbnail" in result.output


def test_locate_reports_missing_install() -> None:
    result = runner.invoke(app, ["locate"])
    assert result.exit_code == 1


def test_locate_uses_env_override(monkeypatch: pytest.MonkeyPatch, tf2_dir: Path) -> None:
    monkeypatch.setenv(config.TF2_DIR_ENV, str(tf2_dir))
    result = runner.invoke(app, ["locate"])
    assert result.exit_code == 0, result.output
    assert str(tf2_dir) in result.output


def test_preview_reports_unwritable_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fail_save(self: Image.Image, fp: object, format: str | None = None, **params: object) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(Image.Image, "save", fail_save)
    result = runner.invoke(app, ["preview", "--out", str(tmp_path / "x.png")])
    assert result.exit_code == 1
    assert "Failed to save preview" in result.output


def test_set_tf2_dir_reports_unwritable_settings(monkeypatch: pytest.MonkeyPatch, tf2_dir: Path) -> None:
    def fail_save(settings: config.Settings, path: Path) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr("demo2replay.cli.save_settings", fail_save)
    result = runner.invoke(app, ["set-tf2-dir", str(tf2_dir)])
    assert result.exit_code == 1
    assert "couldn't save settings" in result.output


def test_create_survives_unwritable_console_log(
    monkeypatch: pytest.MonkeyPatch, tf2_dir: Path, demo_file: Path
) -> None:
    def fail_flush(self: ConsoleLog) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(ConsoleLog, "flush", fail_flush)
    result = runner.invoke(app, ["create", str(demo_file), "--name", "x", "--tf2-dir", str(tf2_dir)])
    assert result.exit_code == 0, result.output
    assert "couldn't write console log" in result.output
    assert "created replay 'x' (handle 0)" in result.output


def test_failed_create_keeps_its_message_when_log_is_unwritable(
    monkeypatch: pytest.MonkeyPatch, tf2_dir: Path, demo_file: Path
) -> None:
    def fail_flush(self: ConsoleLog) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(ConsoleLog, "flush", fail_flush)
    (tf2_dir / DIR_REPLAY / "x.dmx").write_text("taken", encoding="utf-8")
    result = runner.invoke(app, ["create", str(demo_file), "--name", "x", "--tf2-dir", str(tf2_dir)])
    assert result.exit_code == 1
    assert "Error creating replay" in result.output
