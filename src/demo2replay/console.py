from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

CONSOLE_LOG_NAME = "demo2replay.log"
MAX_CONSOLE_LINES = 0x1000


@dataclass(slots=True)
class ConsoleLog:
    base_dir: Path | None = None
    lines: list[str] = field(default_factory=list)
    flushed_index: int = 0
    echo: Callable[[str], None] | None = None

    def log(self, message: str) -> None:
        self.lines.append(message)
        if self.echo is not None:
            self.echo(message)
        if len(self.lines) > MAX_CONSOLE_LINES:
            overflow = len(self.lines) - MAX_CONSOLE_LINES
            del self.lines[:overflow]
            self.flushed_index = max(0, self.flushed_index - overflow)

    def clear(self) -> None:
        self.lines.clear()
        self.flushed_index = 0

    def flush(self) -> None:
        if self.base_dir is None or self.flushed_index >= len(self.lines):
            return
        path = self.base_dir / CONSOLE_LOG_NAME
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            for line in self.lines[self.flushed_index :]:
                handle.write(line.rstrip() + "\n")
        self.flushed_index = len(self.lines)


__all__ = [
    "CONSOLE_LOG_NAME",
    "ConsoleLog",
]
