from __future__ import annotations

import datetime as dt
import re
from typing import Final

from srcfmt.dem import DemoHeader

REPLACEMENT: Final[str] = "_"
MAX_STEM_BYTES: Final[int] = 200

_RESERVED_RE = re.compile(r"[<>:\"/\\|?*'\x00-\x1f\x7f]")
_LEADING_DOTS_RE = re.compile(r"^\.+")
_WINDOWS_RESERVED_RE = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])$", re.IGNORECASE)


def _truncate_utf8(text: str, limit: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= limit:
        return text
    return encoded[:limit].decode("utf-8", errors="ignore")


def sanitize_stem(name: str) -> str:
    """File stem shared by all artifacts of a replay; may be empty."""

    stem = _RESERVED_RE.sub(REPLACEMENT, str(name))
    stem = _LEADING_DOTS_RE.sub(REPLACEMENT, stem)
    stem = _truncate_utf8(stem, MAX_STEM_BYTES)
    # Windows silently drops trailing dots and spaces.
    stem = stem.rstrip(". ")
    if _WINDOWS_RESERVED_RE.match(stem):
        stem += REPLACEMENT
    return stem


def default_replay_name(header: DemoHeader, now: dt.datetime) -> str:
    return (
        f"{now.year}-{now.month}-{now.day} {now.hour}:{now.minute} - "
        f"{header.player_nickname} on {header.map}"
    )


__all__ = [
    "MAX_STEM_BYTES",
    "REPLACEMENT",
    "default_replay_name",
    "sanitize_stem",
]
