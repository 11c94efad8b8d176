from __future__ import annotations

import pytest
from PIL import Image

from srcfmt.vtf import (
    DEFAULT_FLAGS,
    HEADER_SIZE,
    ImageFormat,
    TextureFlags,
    VtfEncoder,
    VtfError,
    encode_vtf,
    loads_header,
)


def test_rgb888_layout() -> None:
    img = Image.new("RGB", (512, 512), (0, 0, 0))
    img.putpixel((0, 0), (10, 20, 30))
    img.putpixel((1, 0), (40, 50, 60))
    data = encode_vtf(img, ImageFormat.RGB888)
    assert len(data) == HEADER_SIZE + 512 * 512 * 3
    assert data[:4] == b"VTF\x00"
    assert data[HEADER_SIZE : HEADER_SIZE + 6] == bytes([10, 20, 30, 40, 50, 60])

    header = loads_header(data)
    assert header.version == (7, 2)
    assert header.header_size == HEADER_SIZE
    assert (header.width, header.height) == (512, 512)
    assert header.high_res_image_format is ImageFormat.RGB888
    assert header.low_res_image_format is ImageFormat.NONE
    assert (header.low_res_image_width, header.low_res_image_height) == (0, 0)
    assert header.mipmap_count == 1
    assert header.frames == 1
    assert header.depth == 1
    assert header.flags == DEFAULT_FLAGS
    assert header.flags & TextureFlags.NOMIP


def test_bgr888_swaps_channels() -> None:
    img = Image.new("RGB", (2, 1), (1, 2, 3))
    data = encode_vtf(img, ImageFormat.BGR888)
    assert data[HEADER_SIZE:] == bytes([3, 2, 1, 3, 2, 1])


def test_reflectivity_is_mean_color() -> None:
    img = Image.new("RGB", (4, 4), (255, 0, 51))
    header = loads_header(encode_vtf(img))
    assert header.reflectivity == pytest.approx((1.0, 0.0, 0.2), abs=1e-6)


def test_unsupported_format_is_rejected() -> None:
    with pytest.raises(VtfError):
        encode_vtf(Image.new("RGB", (4, 4)), ImageFormat.DXT1)
    with pytest.raises(VtfError):
        VtfEncoder(ImageFormat.DXT5)


def test_empty_image_is_rejected() -> None:
    with pytest.raises(VtfError):
        VtfEncoder().encode(Image.new("RGB", (0, 0)))


def test_header_parse_errors() -> None:
    with pytest.raises(VtfError, match="invalid magic"):
        loads_header(b"VTX\x00" + b"\x00" * 80)
    with pytest.raises(VtfError, match="unexpected EOF"):
        loads_header(b"VTF\x00\x07")
