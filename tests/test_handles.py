from __future__ import annotations

from pathlib import Path

import pytest

from demo2replay.errors import BundleIOError
from demo2replay.handles import count_descriptors


def test_empty_replay_folder_gives_handle_zero(tmp_path: Path) -> None:
    assert count_descriptors(tmp_path) == 0


def test_only_dmx_entries_are_counted(tmp_path: Path) -> None:
    for name in ("a.dmx", "b.dmx", "c.dmx"):
        (tmp_path / name).write_text("x", encoding="utf-8")
    for name in ("a.dem", "notes.txt", "upper.DMX", "dmx", "d.dmx.tmp"):
        (tmp_path / name).write_text("x", encoding="utf-8")
    assert count_descriptors(tmp_path) == 3


def test_missing_replay_folder_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(BundleIOError) as info:
        count_descriptors(tmp_path / "missing")
    assert info.value.stage == "reading replay folder"
    assert info.value.written == ()
