from __future__ import annotations

from pathlib import Path
from typing import Final, Iterable

from .errors import BundleIOError

DESCRIPTOR_SUFFIX: Final[str] = ".dmx"


def list_replay_folder(replay_dir: Path) -> tuple[str, ...]:
    try:
        return tuple(sorted(entry.name for entry in replay_dir.iterdir()))
    except OSError as exc:
        raise BundleIOError("reading replay folder", f"{replay_dir}: {exc.strerror or exc}") from exc


def count_descriptors(replay_dir: Path) -> int:
    """Next replay handle: the number of `.dmx` entries already in `replay_dir`.

    The suffix match is exact. Entries are counted without locking, so two
    assemblies started at the same time can compute the same handle.
    """

    return count_descriptor_names(list_replay_folder(replay_dir))


def count_descriptor_names(names: Iterable[str]) -> int:
    return sum(1 for name in names if Path(name).suffix == DESCRIPTOR_SUFFIX)


__all__ = [
    "DESCRIPTOR_SUFFIX",
    "count_descriptor_names",
    "count_descriptors",
    "list_replay_folder",
]
