from __future__ import annotations

"""
Source engine demo header (`.dem`, HL2DEMO).

File layout (little-endian, 1072 bytes):
  - char[8] magic: "HL2DEMO\\0"
  - u32 demo_protocol
  - u32 network_protocol
  - char[260] server_name
  - char[260] client_name (recording player's nickname)
  - char[260] map_name
  - char[260] game_directory
  - f32 playback_time (seconds)
  - u32 ticks
  - u32 frames
  - u32 signon_length

Only the header is decoded; the message stream that follows is left alone.
"""

from dataclasses import dataclass
import io
from pathlib import Path
from typing import Final

from construct import Bytes, Const, ConstError, ConstructError, Float32l, Int32ul, StreamError, Struct

MAGIC: Final[bytes] = b"HL2DEMO\x00"
NAME_SIZE: Final[int] = 260
HEADER_SIZE: Final[int] = 1072


class DemoError(ValueError):
    pass


_MAGIC = Const(MAGIC)

_HEADER_BODY = Struct(
    "demo_protocol" / Int32ul,
    "network_protocol" / Int32ul,
    "server_name" / Bytes(NAME_SIZE),
    "client_name" / Bytes(NAME_SIZE),
    "map_name" / Bytes(NAME_SIZE),
    "game_directory" / Bytes(NAME_SIZE),
    "playback_time" / Float32l,
    "ticks" / Int32ul,
    "frames" / Int32ul,
    "signon_length" / Int32ul,
)


@dataclass(frozen=True, slots=True)
class DemoHeader:
    map: str
    player_nickname: str
    server_name: str
    duration_seconds: float
    tick_count: int
    demo_protocol: int = 3
    network_protocol: int = 24
    game_directory: str = "tf"
    frame_count: int = 0
    signon_length: int = 0


def _decode_name(raw: bytes) -> str:
    # Names are NUL-padded; anything after the first NUL is stale buffer content.
    return bytes(raw).split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _encode_name(value: str, field: str) -> bytes:
    encoded = value.encode("utf-8")
    if len(encoded) >= NAME_SIZE:
        raise DemoError(f"{field} too long: {len(encoded)} bytes (max {NAME_SIZE - 1})")
    return encoded.ljust(NAME_SIZE, b"\x00")


def loads_header(data: bytes) -> DemoHeader:
    stream = io.BytesIO(data)

    try:
        _MAGIC.parse_stream(stream)
    except StreamError as exc:
        raise DemoError("unexpected EOF") from exc
    except ConstError as exc:
        raise DemoError("invalid magic") from exc

    try:
        raw = _HEADER_BODY.parse_stream(stream)
    except StreamError as exc:
        raise DemoError("unexpected EOF") from exc
    except ConstructError as exc:
        raise DemoError(str(exc)) from exc

    return DemoHeader(
        map=_decode_name(raw["map_name"]),
        player_nickname=_decode_name(raw["client_name"]),
        server_name=_decode_name(raw["server_name"]),
        duration_seconds=float(raw["playback_time"]),
        tick_count=int(raw["ticks"]),
        demo_protocol=int(raw["demo_protocol"]),
        network_protocol=int(raw["network_protocol"]),
        game_directory=_decode_name(raw["game_directory"]),
        frame_count=int(raw["frames"]),
        signon_length=int(raw["signon_length"]),
    )


def load_header(path: Path) -> DemoHeader:
    with path.open("rb") as handle:
        return loads_header(handle.read(HEADER_SIZE))


def dumps_header(header: DemoHeader) -> bytes:
    raw = {
        "demo_protocol": int(header.demo_protocol) & 0xFFFF_FFFF,
        "network_protocol": int(header.network_protocol) & 0xFFFF_FFFF,
        "server_name": _encode_name(header.server_name, "server_name"),
        "client_name": _encode_name(header.player_nickname, "player_nickname"),
        "map_name": _encode_name(header.map, "map"),
        "game_directory": _encode_name(header.game_directory, "game_directory"),
        "playback_time": float(header.duration_seconds),
        "ticks": int(header.tick_count) & 0xFFFF_FFFF,
        "frames": int(header.frame_count) & 0xFFFF_FFFF,
        "signon_length": int(header.signon_length) & 0xFFFF_FFFF,
    }
    out = bytearray()
    out += MAGIC
    try:
        out += _HEADER_BODY.build(raw)
    except ConstructError as exc:
        raise DemoError(str(exc)) from exc
    return bytes(out)


__all__ = [
    "DemoError",
    "DemoHeader",
    "HEADER_SIZE",
    "MAGIC",
    "dumps_header",
    "load_header",
    "loads_header",
]
