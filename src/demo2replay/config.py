from __future__ import annotations

from pathlib import Path
import os
from typing import Callable

import msgspec
from platformdirs import PlatformDirs

from .fsio import write_file_atomic

APP_NAME = "demo2replay"
SETTINGS_NAME = "settings.json"
CONFIG_DIR_ENV = "DEMO2REPLAY_CONFIG_DIR"
TF2_DIR_ENV = "DEMO2REPLAY_TF2_DIR"


class SettingsError(ValueError):
    pass


class Settings(msgspec.Struct, omit_defaults=True):
    tf2_dir: str | None = None


def config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_config_path)


def settings_path() -> Path:
    return config_dir() / SETTINGS_NAME


def load_settings(path: Path) -> Settings:
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return Settings()
    try:
        return msgspec.json.decode(data, type=Settings)
    except msgspec.DecodeError as exc:
        raise SettingsError(f"{path}: {exc}") from exc


def save_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = msgspec.json.format(msgspec.json.encode(settings), indent=2) + b"\n"
    write_file_atomic(path, payload)


def resolve_install_root(
    explicit: Path | None,
    settings: Settings,
    locate: Callable[[], Path | None] | None = None,
) -> Path | None:
    """CLI option, then `DEMO2REPLAY_TF2_DIR`, then saved settings, then the Steam lookup."""

    if explicit is not None:
        return Path(explicit).expanduser()
    override = os.environ.get(TF2_DIR_ENV)
    if override:
        return Path(override).expanduser()
    if settings.tf2_dir:
        return Path(settings.tf2_dir).expanduser()
    if locate is not None:
        return locate()
    return None


__all__ = [
    "APP_NAME",
    "CONFIG_DIR_ENV",
    "Settings",
    "SettingsError",
    "TF2_DIR_ENV",
    "config_dir",
    "load_settings",
    "resolve_install_root",
    "save_settings",
    "settings_path",
]
