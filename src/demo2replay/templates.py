from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import math
import struct
from typing import Final, Mapping

SUB_NAME: Final[str] = "%replay_name%"
SUB_MAP: Final[str] = "%map%"
SUB_LENGTH: Final[str] = "%length%"
SUB_TITLE: Final[str] = "%title%"
SUB_DEMO: Final[str] = "%demo%"
SUB_SCREENSHOT: Final[str] = "%screenshot%"
SUB_DATE: Final[str] = "%date%"
SUB_TIME: Final[str] = "%time%"
SUB_HANDLE: Final[str] = "%handle%"

PLACEHOLDERS: Final[tuple[str, ...]] = (
    SUB_NAME,
    SUB_MAP,
    SUB_LENGTH,
    SUB_TITLE,
    SUB_DEMO,
    SUB_SCREENSHOT,
    SUB_DATE,
    SUB_TIME,
    SUB_HANDLE,
)

TEMPLATE_DMX: Final[str] = """\
"%replay_name%"
{
\t"handle"\t"%handle%"
\t"map"\t"%map%"
\t"complete"\t"1"
\t"title"\t"%title%"
\t"recon_filename"\t"%demo%"
\t"spawn_tick"\t"-1"
\t"death_tick"\t"-1"
\t"status"\t"3"
\t"length"\t"%length%"
\t"record_time"
\t{
\t\t"date"\t"%date%"
\t\t"time"\t"%time%"
\t}
\t"screenshots"
\t{
\t\t"screenshot"
\t\t{
\t\t\t"name"\t"%screenshot%"
\t\t\t"width"\t"512"
\t\t\t"height"\t"512"
\t\t}
\t}
}
"""

TEMPLATE_VMT: Final[str] = """\
"UnlitGeneric"
{
\t"$basetexture"\t"vgui/replay/thumbnails/%screenshot%"
\t"$vertexcolor"\t"1"
\t"$vertexalpha"\t"1"
\t"$translucent"\t"1"
\t"$no_fullbright"\t"1"
\t"$ignorez"\t"1"
}
"""


@dataclass(frozen=True, slots=True)
class ReplayTemplates:
    descriptor: str
    material: str


DEFAULT_TEMPLATES: Final[ReplayTemplates] = ReplayTemplates(descriptor=TEMPLATE_DMX, material=TEMPLATE_VMT)


def _f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", float(value)))[0]
    except OverflowError:
        return math.copysign(math.inf, float(value))


def format_length(seconds: float) -> str:
    """Shortest positional decimal that reads back as the same 32-bit float.

    Demo durations are stored as f32, so `125.4` renders as `"125.4"` rather
    than the widened double `125.40000152587891`.
    """

    value = float(seconds)
    if math.isnan(value):
        return "NaN"
    target = _f32(value)
    if math.isinf(target):
        return "inf" if target > 0 else "-inf"
    for precision in range(1, 10):
        text = f"{target:.{precision}g}"
        if _f32(float(text)) == target:
            break
    return format(Decimal(text), "f")


def render_template(template: str, substitutions: Mapping[str, str]) -> str:
    out = str(template)
    for token, value in substitutions.items():
        out = out.replace(token, str(value))
    return out


def descriptor_substitutions(
    *,
    stem: str,
    title: str,
    map_name: str,
    duration_seconds: float,
    date_field: int,
    time_field: int,
    handle: int,
) -> dict[str, str]:
    return {
        SUB_NAME: stem,
        SUB_MAP: map_name,
        SUB_LENGTH: format_length(duration_seconds),
        SUB_TITLE: title,
        SUB_DEMO: f"{stem}.dem",
        SUB_SCREENSHOT: stem,
        SUB_DATE: str(int(date_field)),
        SUB_TIME: str(int(time_field)),
        SUB_HANDLE: str(int(handle)),
    }


def material_substitutions(*, stem: str) -> dict[str, str]:
    return {SUB_SCREENSHOT: stem}


def render_descriptor(
    templates: ReplayTemplates,
    *,
    stem: str,
    title: str,
    map_name: str,
    duration_seconds: float,
    date_field: int,
    time_field: int,
    handle: int,
) -> str:
    subs = descriptor_substitutions(
        stem=stem,
        title=title,
        map_name=map_name,
        duration_seconds=duration_seconds,
        date_field=date_field,
        time_field=time_field,
        handle=handle,
    )
    return render_template(templates.descriptor, subs)


def render_material(templates: ReplayTemplates, *, stem: str) -> str:
    return render_template(templates.material, material_substitutions(stem=stem))


__all__ = [
    "DEFAULT_TEMPLATES",
    "PLACEHOLDERS",
    "ReplayTemplates",
    "SUB_DATE",
    "SUB_DEMO",
    "SUB_HANDLE",
    "SUB_LENGTH",
    "SUB_MAP",
    "SUB_NAME",
    "SUB_SCREENSHOT",
    "SUB_TIME",
    "SUB_TITLE",
    "TEMPLATE_DMX",
    "TEMPLATE_VMT",
    "descriptor_substitutions",
    "format_length",
    "material_substitutions",
    "render_descriptor",
    "render_material",
    "render_template",
]
