from __future__ import annotations

import io
from typing import Final, Protocol

from PIL import Image, UnidentifiedImageError

THUMBNAIL_SIZE: Final[int] = 512
CANVAS_MODE: Final[str] = "RGB"
CANVAS_COLOR: Final[tuple[int, int, int]] = (0, 0, 0)


class ThumbnailDecodeError(ValueError):
    pass


class ImageDecoder(Protocol):
    def decode(self, data: bytes) -> Image.Image: ...


class PillowImageDecoder:
    """Decode any raster format Pillow recognizes; the container is sniffed from content."""

    def decode(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except UnidentifiedImageError as exc:
            raise ThumbnailDecodeError("unrecognized image format") from exc
        except Exception as exc:
            # Pillow plugins raise IndexError, struct.error, EOFError, ... on corrupt data.
            raise ThumbnailDecodeError(f"failed to decode image: {type(exc).__name__}: {exc}") from exc
        return img


def default_thumbnail() -> Image.Image:
    return Image.new(CANVAS_MODE, (0, 0))


def load_thumbnail(data: bytes | None, decoder: ImageDecoder | None = None) -> Image.Image:
    if data is None:
        return default_thumbnail()
    if decoder is None:
        decoder = PillowImageDecoder()
    return decoder.decode(bytes(data))


def fit_size(width: int, height: int, limit: int = THUMBNAIL_SIZE) -> tuple[int, int]:
    width = int(width)
    height = int(height)
    largest = max(width, height)
    if largest <= limit:
        return (width, height)
    scale = float(limit) / float(largest)
    return (
        min(limit, max(1, round(width * scale))),
        min(limit, max(1, round(height * scale))),
    )


def _to_rgb(image: Image.Image) -> Image.Image:
    if image.mode == CANVAS_MODE:
        return image
    try:
        # Alpha is dropped, not blended against the canvas color.
        return image.convert(CANVAS_MODE)
    except (OSError, ValueError) as exc:
        raise ThumbnailDecodeError(f"unsupported image mode: {image.mode}") from exc


def compose_canvas(image: Image.Image, *, size: int = THUMBNAIL_SIZE) -> Image.Image:
    """Place `image` top-left on a black `size` x `size` RGB canvas.

    Larger images are shrunk (aspect preserved, triangle filter) to fit;
    smaller images are left at their size. Zero-sized images give a blank canvas.
    """

    canvas = Image.new(CANVAS_MODE, (size, size), CANVAS_COLOR)
    width, height = image.size
    if width == 0 or height == 0:
        return canvas

    rgb = _to_rgb(image)
    target = fit_size(width, height, size)
    if target != (width, height):
        rgb = rgb.resize(target, Image.Resampling.BILINEAR)
    canvas.paste(rgb, (0, 0))
    return canvas


__all__ = [
    "CANVAS_COLOR",
    "ImageDecoder",
    "PillowImageDecoder",
    "THUMBNAIL_SIZE",
    "ThumbnailDecodeError",
    "compose_canvas",
    "default_thumbnail",
    "fit_size",
    "load_thumbnail",
]
