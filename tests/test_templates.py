from __future__ import annotations

from demo2replay.templates import (
    DEFAULT_TEMPLATES,
    PLACEHOLDERS,
    ReplayTemplates,
    format_length,
    render_descriptor,
    render_material,
    render_template,
)


def _fields(**overrides: object) -> dict[str, object]:
    fields: dict[str, object] = {
        "stem": "Alice_s Best Play",
        "title": "Alice's Best Play",
        "map_name": "ctf_2fort",
        "duration_seconds": 125.40,
        "date_field": 7758,
        "time_field": 1453,
        "handle": 4,
    }
    fields.update(overrides)
    return fields


def test_template_without_tokens_is_unchanged() -> None:
    text = '"replay"\n{\n\t"complete"\t"1"\n}\n'
    assert render_template(text, {"%map%": "ctf_2fort"}) == text


def test_every_occurrence_is_replaced() -> None:
    out = render_template("%map% / %map% / %handle%%handle%", {"%map%": "pl_upward", "%handle%": "7"})
    assert out == "pl_upward / pl_upward / 77"


def test_descriptor_values() -> None:
    out = render_descriptor(DEFAULT_TEMPLATES, **_fields())
    assert '"map"\t"ctf_2fort"' in out
    assert '"length"\t"125.4"' in out
    assert '"title"\t"Alice\'s Best Play"' in out
    assert '"recon_filename"\t"Alice_s Best Play.dem"' in out
    assert '"name"\t"Alice_s Best Play"' in out
    assert '"date"\t"7758"' in out
    assert '"time"\t"1453"' in out
    assert '"handle"\t"4"' in out
    assert out.startswith('"Alice_s Best Play"\n')
    assert not any(token in out for token in PLACEHOLDERS)


def test_material_only_uses_screenshot() -> None:
    out = render_material(DEFAULT_TEMPLATES, stem="Alice_s Best Play")
    assert '"$basetexture"\t"vgui/replay/thumbnails/Alice_s Best Play"' in out
    assert not any(token in out for token in PLACEHOLDERS)


def test_material_leaves_descriptor_only_tokens_alone() -> None:
    templates = ReplayTemplates(descriptor="", material="%screenshot% %map%")
    assert render_material(templates, stem="s") == "s %map%"


def test_length_uses_shortest_f32_decimal() -> None:
    assert format_length(125.40) == "125.4"
    assert format_length(125.40000152587891) == "125.4"
    assert format_length(125.0) == "125"
    assert format_length(0.0) == "0"
    assert format_length(0.015) == "0.015"
    assert format_length(1e20) == "100000000000000000000"
    assert format_length(1e-5) == "0.00001"
