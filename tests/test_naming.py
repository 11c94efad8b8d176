from __future__ import annotations

import datetime as dt

from srcfmt.dem import DemoHeader
from demo2replay.naming import MAX_STEM_BYTES, default_replay_name, sanitize_stem


def test_illegal_characters_are_replaced() -> None:
    assert sanitize_stem("Alice's Best Play") == "Alice_s Best Play"
    assert sanitize_stem('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"
    assert sanitize_stem("tab\there") == "tab_here"


def test_dot_prefixes_and_reserved_names() -> None:
    assert sanitize_stem("..hidden") == "_hidden"
    assert sanitize_stem("CON") == "CON_"
    assert sanitize_stem("lpt1") == "lpt1_"
    assert sanitize_stem("console") == "console"


def test_trailing_dots_and_spaces_are_stripped() -> None:
    assert sanitize_stem("replay. . ") == "replay"
    assert sanitize_stem("   ") == ""
    assert sanitize_stem("") == ""


def test_long_names_are_truncated_on_utf8_boundary() -> None:
    stem = sanitize_stem("é" * 300)
    assert len(stem.encode("utf-8")) <= MAX_STEM_BYTES
    assert stem == "é" * (MAX_STEM_BYTES // 2)


def test_default_name_is_unpadded_date_player_and_map() -> None:
    header = DemoHeader(
        map="koth_viaduct",
        player_nickname="Alice",
        server_name="Valve",
        duration_seconds=10.0,
        tick_count=660,
    )
    name = default_replay_name(header, dt.datetime(2024, 3, 5, 9, 7))
    assert name == "2024-3-5 9:7 - Alice on koth_viaduct"
    assert sanitize_stem(name) == "2024-3-5 9_7 - Alice on koth_viaduct"
