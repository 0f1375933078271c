from __future__ import annotations

import base64
import binascii
import io
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError


class ImageDecodeError(Exception):
    pass


def decode_b64_image(payload: str | None) -> bytes:
    if not payload:
        raise ImageDecodeError("response contained no image data")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as ex:
        raise ImageDecodeError(str(ex)) from ex


@dataclass(frozen=True)
class ImageHandle:
    """Decoded image bytes plus what a renderer needs to know about them."""

    data: bytes
    width: int
    height: int
    format: str

    @classmethod
    def from_bytes(cls, data: bytes) -> ImageHandle:
        if not data:
            raise ImageDecodeError("image payload is empty")
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                width, height = image.size
                fmt = image.format or "unknown"
        except (UnidentifiedImageError, OSError, ValueError) as ex:
            raise ImageDecodeError(f"not a readable image: {ex}") from ex
        return cls(data=data, width=width, height=height, format=fmt)

    def open(self) -> Image.Image:
        return Image.open(io.BytesIO(self.data))
