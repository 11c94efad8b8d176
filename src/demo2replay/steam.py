from __future__ import annotations

from pathlib import Path
import os
import re
import sys
from typing import Final, Iterable

TF2_APP_ID: Final[int] = 440
STEAM_DIR_ENV: Final[str] = "DEMO2REPLAY_STEAM_DIR"

_VDF_PATH_RE = re.compile(r'^\s*"path"\s+"((?:[^"\\]|\\.)*)"', re.MULTILINE)
_ACF_INSTALLDIR_RE = re.compile(r'^\s*"installdir"\s+"((?:[^"\\]|\\.)*)"', re.MULTILINE | re.IGNORECASE)


def _unescape(value: str) -> str:
    return value.replace("\\\\", "\\").replace('\\"', '"')


def _windows_registry_root() -> Path | None:
    if sys.platform != "win32":
        return None
    import winreg

    for hive, key, name in (
        (winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam", "SteamPath"),
        (winreg.HKEY_LOCAL_MACHINE, r"SOFTWARE\WOW6432Node\Valve\Steam", "InstallPath"),
    ):
        try:
            with winreg.OpenKey(hive, key) as handle:
                value, _kind = winreg.QueryValueEx(handle, name)
        except OSError:
            continue
        if value:
            return Path(str(value))
    return None


def candidate_steam_roots() -> list[Path]:
    roots: list[Path] = []
    override = os.environ.get(STEAM_DIR_ENV)
    if override:
        roots.append(Path(override).expanduser())
    registry = _windows_registry_root()
    if registry is not None:
        roots.append(registry)
    home = Path.home()
    if sys.platform == "win32":
        for env in ("PROGRAMFILES(X86)", "PROGRAMFILES"):
            base = os.environ.get(env)
            if base:
                roots.append(Path(base) / "Steam")
    elif sys.platform == "darwin":
        roots.append(home / "Library" / "Application Support" / "Steam")
    else:
        roots.extend(
            [
                home / ".steam" / "steam",
                home / ".local" / "share" / "Steam",
                home / ".var" / "app" / "com.valvesoftware.Steam" / ".local" / "share" / "Steam",
            ]
        )
    return roots


def library_folders(steam_root: Path) -> list[Path]:
    """Steam library roots listed in `libraryfolders.vdf`, the install root first."""

    out: list[Path] = [steam_root]
    vdf = steam_root / "steamapps" / "libraryfolders.vdf"
    try:
        text = vdf.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return out
    for match in _VDF_PATH_RE.finditer(text):
        out.append(Path(_unescape(match.group(1))))
    return out


def app_install_dir(library: Path, app_id: int) -> Path | None:
    manifest = library / "steamapps" / f"appmanifest_{int(app_id)}.acf"
    try:
        text = manifest.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    match = _ACF_INSTALLDIR_RE.search(text)
    if match is None:
        return None
    path = library / "steamapps" / "common" / _unescape(match.group(1))
    return path if path.is_dir() else None


def _dedupe(paths: Iterable[Path]) -> list[Path]:
    seen: set[str] = set()
    out: list[Path] = []
    for path in paths:
        key = os.path.normcase(str(path))
        if key in seen:
            continue
        seen.add(key)
        out.append(path)
    return out


def locate_app(app_id: int, roots: Iterable[Path] | None = None) -> Path | None:
    if roots is None:
        roots = candidate_steam_roots()
    for root in _dedupe(roots):
        if not root.is_dir():
            continue
        for library in _dedupe(library_folders(root)):
            found = app_install_dir(library, app_id)
            if found is not None:
                return found
    return None


def locate_tf2(roots: Iterable[Path] | None = None) -> Path | None:
    return locate_app(TF2_APP_ID, roots)


__all__ = [
    "STEAM_DIR_ENV",
    "TF2_APP_ID",
    "app_install_dir",
    "candidate_steam_roots",
    "library_folders",
    "locate_app",
    "locate_tf2",
]
