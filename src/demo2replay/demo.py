from __future__ import annotations

from pathlib import Path
from typing import Callable

from srcfmt import dem
from srcfmt.dem import DemoHeader

DemoHeaderDecoder = Callable[[bytes], DemoHeader]


class DemoLoadError(ValueError):
    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"{stage}: {message}")


def read_demo_header(path: Path, decode: DemoHeaderDecoder = dem.loads_header) -> DemoHeader:
    try:
        with path.open("rb") as handle:
            data = handle.read(dem.HEADER_SIZE)
    except OSError as exc:
        raise DemoLoadError("reading demo file", f"{path}: {exc.strerror or exc}") from exc
    try:
        return decode(data)
    except dem.DemoError as exc:
        raise DemoLoadError("parsing demo header", str(exc)) from exc


__all__ = [
    "DemoHeaderDecoder",
    "DemoLoadError",
    "read_demo_header",
]
