from __future__ import annotations

from pathlib import Path

import typer

from . import __version__
from .bundle import ReplayRequest, assemble_replay, demos_dir
from .config import Settings, SettingsError, config_dir, load_settings, resolve_install_root, save_settings, settings_path
from .console import ConsoleLog
from .demo import DemoLoadError, read_demo_header
from .errors import BundleError
from .naming import default_replay_name
from .steam import locate_tf2
from .templates import format_length
from .thumbnail import ThumbnailDecodeError, compose_canvas, load_thumbnail
from .timestamp import local_now


app = typer.Typer(add_completion=False, help="Turn TF2 demos into replays the in-game replay browser can play.")


def _load_settings_or_exit() -> Settings:
    try:
        return load_settings(settings_path())
    except SettingsError as exc:
        typer.echo(f"bad settings file: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _flush_log(log: ConsoleLog) -> None:
    # A log write failure must not mask the command's own result.
    try:
        log.flush()
    except OSError as exc:
        typer.echo(f"couldn't write console log: {exc}", err=True)


def _read_thumbnail_or_exit(path: Path | None) -> bytes | None:
    if path is None:
        return None
    try:
        return path.read_bytes()
    except OSError as exc:
        typer.echo(f"Failed to set thumbnail: {path}: {exc.strerror or exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("create")
def cmd_create(
    demo: Path = typer.Argument(..., help="demo file (.dem) to turn into a replay"),
    name: str | None = typer.Option(None, "--name", "-n", help="replay title (default: date, player and map)"),
    thumbnail: Path | None = typer.Option(None, "--thumbnail", "-t", help="thumbnail image (default: blank)"),
    tf2_dir: Path | None = typer.Option(None, "--tf2-dir", help="TF2 install directory (contains tf/)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="print progress messages"),
) -> None:
    """Create a replay bundle from a demo."""
    settings = _load_settings_or_exit()
    log = ConsoleLog(base_dir=config_dir(), echo=typer.echo if verbose else None)
    try:
        install_root = resolve_install_root(tf2_dir, settings, locate_tf2)
        if install_root is not None:
            log.log(f"steam: using TF2 directory {install_root}")

        try:
            header = read_demo_header(demo)
        except DemoLoadError as exc:
            typer.echo(f"Couldn't load demo: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        log.log(f"replay: loaded demo {demo} ({header.player_nickname} on {header.map})")

        request = ReplayRequest(
            install_root=install_root,
            demo_file_path=demo,
            replay_display_name=name if name is not None else default_replay_name(header, local_now()),
            header=header,
            thumbnail_bytes=_read_thumbnail_or_exit(thumbnail),
        )
        try:
            artifacts = assemble_replay(request, log=log)
        except BundleError as exc:
            typer.echo(f"Error creating replay: {exc}", err=True)
            raise typer.Exit(code=1) from exc
    finally:
        _flush_log(log)

    typer.echo(f"created replay {request.replay_display_name!r} (handle {artifacts.handle})")
    for path in artifacts.paths():
        typer.echo(f"  {path}")


@app.command("header")
def cmd_header(demo: Path = typer.Argument(..., help="demo file (.dem)")) -> None:
    """Print the header of a demo file."""
    try:
        header = read_demo_header(demo)
    except DemoLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"map={header.map}")
    typer.echo(f"nick={header.player_nickname}")
    typer.echo(f"server={header.server_name}")
    typer.echo(f"duration={format_length(header.duration_seconds)}")
    typer.echo(f"ticks={header.tick_count}")
    typer.echo(f"frames={header.frame_count}")
    typer.echo(f"game={header.game_directory}")
    typer.echo(f"protocol={header.demo_protocol}/{header.network_protocol}")


@app.command("preview")
def cmd_preview(
    thumbnail: Path | None = typer.Argument(None, help="thumbnail image (default: blank)"),
    out: Path = typer.Option(..., "--out", "-o", help="where to save the composed 512x512 PNG"),
) -> None:
    """Save the thumbnail exactly as it will be placed in the replay texture."""
    data = _read_thumbnail_or_exit(thumbnail)
    try:
        canvas = compose_canvas(load_thumbnail(data))
    except ThumbnailDecodeError as exc:
        typer.echo(f"Failed to set thumbnail: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        canvas.save(out, format="PNG")
    except OSError as exc:
        typer.echo(f"Failed to save preview: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"wrote {out}")


@app.command("locate")
def cmd_locate() -> None:
    """Print the TF2 directory that `create` would use."""
    settings = _load_settings_or_exit()
    install_root = resolve_install_root(None, settings, locate_tf2)
    if install_root is None:
        typer.echo("TF2 directory not found; pass --tf2-dir or run set-tf2-dir", err=True)
        raise typer.Exit(code=1)
    typer.echo(str(install_root))
    typer.echo(f"demos: {demos_dir(install_root)}")


@app.command("set-tf2-dir")
def cmd_set_tf2_dir(path: Path = typer.Argument(..., help="TF2 install directory (contains tf/)")) -> None:
    """Remember the TF2 directory for later runs."""
    if not path.is_dir():
        typer.echo(f"not a directory: {path}", err=True)
        raise typer.Exit(code=1)
    settings = _load_settings_or_exit()
    settings.tf2_dir = str(path.resolve())
    target = settings_path()
    try:
        save_settings(settings, target)
    except OSError as exc:
        typer.echo(f"couldn't save settings to {target}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"saved {settings.tf2_dir} to {target}")


@app.command("version")
def cmd_version() -> None:
    """Print the version."""
    typer.echo(__version__)


def main() -> None:
    app()


__all__ = ["app", "main"]
