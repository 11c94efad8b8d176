from __future__ import annotations

"""
VTF texture container (Valve Texture Format, version 7.2).

File layout:
  - 80-byte header (65 bytes of fields, zero padded to 16-byte alignment)
  - low-res thumbnail image (absent here: format NONE, 0x0)
  - high-res image data, mip levels smallest to largest; each level holds
    frames -> faces -> depth slices

Only single-frame, single-mip, uncompressed 2D textures are written.
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
import io
from typing import Final

from construct import Array, Byte, Const, ConstError, ConstructError, Float32l, Int16ul, Int32sl, Int32ul
from construct import Padding, StreamError, Struct
from PIL import Image, ImageStat

MAGIC: Final[bytes] = b"VTF\x00"
VERSION: Final[tuple[int, int]] = (7, 2)
HEADER_SIZE: Final[int] = 80


class VtfError(ValueError):
    pass


class ImageFormat(IntEnum):
    NONE = -1
    RGBA8888 = 0
    ABGR8888 = 1
    RGB888 = 2
    BGR888 = 3
    RGB565 = 4
    I8 = 5
    IA88 = 6
    P8 = 7
    A8 = 8
    RGB888_BLUESCREEN = 9
    BGR888_BLUESCREEN = 10
    ARGB8888 = 11
    BGRA8888 = 12
    DXT1 = 13
    DXT3 = 14
    DXT5 = 15


class TextureFlags(IntFlag):
    POINTSAMPLE = 0x0001
    TRILINEAR = 0x0002
    CLAMPS = 0x0004
    CLAMPT = 0x0008
    ANISOTROPIC = 0x0010
    HINT_DXT5 = 0x0020
    NORMAL = 0x0080
    NOMIP = 0x0100
    NOLOD = 0x0200
    ALL_MIPS = 0x0400
    PROCEDURAL = 0x0800
    ONEBITALPHA = 0x1000
    EIGHTBITALPHA = 0x2000


# Pillow raw encoder mode and bytes per pixel for each writable format.
_RAW_MODES: Final[dict[ImageFormat, tuple[str, str, int]]] = {
    ImageFormat.RGB888: ("RGB", "RGB", 3),
    ImageFormat.BGR888: ("RGB", "BGR", 3),
    ImageFormat.RGBA8888: ("RGBA", "RGBA", 4),
}

DEFAULT_FLAGS: Final[int] = int(TextureFlags.NOMIP | TextureFlags.NOLOD)

_MAGIC = Const(MAGIC)

_HEADER_V7_2 = Struct(
    "version" / Array(2, Int32ul),
    "header_size" / Int32ul,
    "width" / Int16ul,
    "height" / Int16ul,
    "flags" / Int32ul,
    "frames" / Int16ul,
    "first_frame" / Int16ul,
    Padding(4),
    "reflectivity" / Array(3, Float32l),
    Padding(4),
    "bumpmap_scale" / Float32l,
    "high_res_image_format" / Int32sl,
    "mipmap_count" / Byte,
    "low_res_image_format" / Int32sl,
    "low_res_image_width" / Byte,
    "low_res_image_height" / Byte,
    "depth" / Int16ul,
    Padding(HEADER_SIZE - 65),
)


@dataclass(frozen=True, slots=True)
class VtfHeader:
    version: tuple[int, int]
    header_size: int
    width: int
    height: int
    flags: int
    frames: int
    first_frame: int
    reflectivity: tuple[float, float, float]
    bumpmap_scale: float
    high_res_image_format: ImageFormat
    mipmap_count: int
    low_res_image_format: ImageFormat
    low_res_image_width: int
    low_res_image_height: int
    depth: int


def image_data_size(width: int, height: int, image_format: ImageFormat) -> int:
    entry = _RAW_MODES.get(ImageFormat(image_format))
    if entry is None:
        raise VtfError(f"unsupported image format: {ImageFormat(image_format).name}")
    return int(width) * int(height) * entry[2]


def _reflectivity(image: Image.Image) -> tuple[float, float, float]:
    if image.width == 0 or image.height == 0:
        return (0.0, 0.0, 0.0)
    mean = ImageStat.Stat(image.convert("RGB")).mean
    return (mean[0] / 255.0, mean[1] / 255.0, mean[2] / 255.0)


def encode_vtf(
    image: Image.Image,
    image_format: ImageFormat = ImageFormat.RGB888,
    *,
    flags: int = DEFAULT_FLAGS,
) -> bytes:
    image_format = ImageFormat(image_format)
    entry = _RAW_MODES.get(image_format)
    if entry is None:
        raise VtfError(f"unsupported image format: {image_format.name}")
    mode, raw_mode, _bpp = entry
    width, height = image.size
    if not (0 < width <= 0xFFFF and 0 < height <= 0xFFFF):
        raise VtfError(f"invalid texture size: {width}x{height}")

    pixels = image.convert(mode).tobytes("raw", raw_mode)
    expected = image_data_size(width, height, image_format)
    if len(pixels) != expected:
        raise VtfError(f"pixel data size mismatch: {len(pixels)} != {expected}")

    header_raw = {
        "version": list(VERSION),
        "header_size": HEADER_SIZE,
        "width": width,
        "height": height,
        "flags": int(flags) & 0xFFFF_FFFF,
        "frames": 1,
        "first_frame": 0,
        "reflectivity": list(_reflectivity(image)),
        "bumpmap_scale": 1.0,
        "high_res_image_format": int(image_format),
        "mipmap_count": 1,
        "low_res_image_format": int(ImageFormat.NONE),
        "low_res_image_width": 0,
        "low_res_image_height": 0,
        "depth": 1,
    }

    out = bytearray()
    out += MAGIC
    try:
        out += _HEADER_V7_2.build(header_raw)
    except ConstructError as exc:
        raise VtfError(str(exc)) from exc
    out += pixels
    return bytes(out)


def loads_header(data: bytes) -> VtfHeader:
    stream = io.BytesIO(data)

    try:
        _MAGIC.parse_stream(stream)
    except StreamError as exc:
        raise VtfError("unexpected EOF") from exc
    except ConstError as exc:
        raise VtfError("invalid magic") from exc

    try:
        raw = _HEADER_V7_2.parse_stream(stream)
    except StreamError as exc:
        raise VtfError("unexpected EOF") from exc
    except ConstructError as exc:
        raise VtfError(str(exc)) from exc

    version = (int(raw["version"][0]), int(raw["version"][1]))
    if version[0] != 7 or version[1] < 2:
        raise VtfError(f"unsupported vtf version: {version[0]}.{version[1]}")

    try:
        high_res_format = ImageFormat(int(raw["high_res_image_format"]))
        low_res_format = ImageFormat(int(raw["low_res_image_format"]))
    except ValueError as exc:
        raise VtfError(str(exc)) from exc

    return VtfHeader(
        version=version,
        header_size=int(raw["header_size"]),
        width=int(raw["width"]),
        height=int(raw["height"]),
        flags=int(raw["flags"]),
        frames=int(raw["frames"]),
        first_frame=int(raw["first_frame"]),
        reflectivity=tuple(float(v) for v in raw["reflectivity"]),  # type: ignore[arg-type]
        bumpmap_scale=float(raw["bumpmap_scale"]),
        high_res_image_format=high_res_format,
        mipmap_count=int(raw["mipmap_count"]),
        low_res_image_format=low_res_format,
        low_res_image_width=int(raw["low_res_image_width"]),
        low_res_image_height=int(raw["low_res_image_height"]),
        depth=int(raw["depth"]),
    )


class VtfEncoder:
    """Texture encoder writing single-mip uncompressed VTF payloads."""

    def __init__(self, image_format: ImageFormat = ImageFormat.RGB888, *, flags: int = DEFAULT_FLAGS) -> None:
        image_format = ImageFormat(image_format)
        if image_format not in _RAW_MODES:
            raise VtfError(f"unsupported image format: {image_format.name}")
        self.image_format = image_format
        self.flags = int(flags)

    def encode(self, image: Image.Image) -> bytes:
        return encode_vtf(image, self.image_format, flags=self.flags)


__all__ = [
    "DEFAULT_FLAGS",
    "HEADER_SIZE",
    "ImageFormat",
    "MAGIC",
    "TextureFlags",
    "VtfEncoder",
    "VtfError",
    "VtfHeader",
    "encode_vtf",
    "image_data_size",
    "loads_header",
]
