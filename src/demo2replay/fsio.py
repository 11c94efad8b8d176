from __future__ import annotations

from pathlib import Path
import os
import shutil
import tempfile
from typing import BinaryIO, Callable


def _replace_from_temp(dest: Path, fill: Callable[[BinaryIO], None]) -> None:
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="wb",
            delete=False,
            dir=dest.parent,
            prefix=dest.name + ".",
            suffix=".tmp",
        ) as handle:
            tmp_path = Path(handle.name)
            fill(handle)
            handle.flush()
            os.fsync(handle.fileno())
        tmp_path.replace(dest)
        tmp_path = None
    finally:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass


def write_file_atomic(dest: Path, data: bytes) -> None:
    _replace_from_temp(dest, lambda handle: handle.write(data))


def copy_file_atomic(src: Path, dest: Path) -> None:
    def fill(handle: BinaryIO) -> None:
        with src.open("rb") as source:
            shutil.copyfileobj(source, handle)

    _replace_from_temp(dest, fill)


__all__ = [
    "copy_file_atomic",
    "write_file_atomic",
]
