"""Reference image codec: PixelBuffer <-> encoded bytes."""

from __future__ import annotations

import io
import logging
from typing import Protocol

import numpy as np
from PIL import Image

from snapdiff.buffer import ImageSource, PixelBuffer, decode_image, validate_dimensions
from snapdiff.errors import ConversionError, ConversionErrorKind

log = logging.getLogger(__name__)


class Codec(Protocol):
    """Deterministic lossless codec used for stored reference images."""

    extension: str

    def encode(self, buffer: PixelBuffer) -> bytes: ...

    def encode_image(self, image: Image.Image) -> bytes: ...

    def decode(self, source: ImageSource) -> PixelBuffer: ...


def unpremultiply(pixels: np.ndarray) -> np.ndarray:
    """Return straight-alpha RGBA for a premultiplied array."""
    out = pixels.copy()
    alpha = pixels[..., 3:4].astype(np.uint16)
    color = pixels[..., :3].astype(np.uint16)
    safe = np.where(alpha == 0, 1, alpha)
    straight = np.minimum((color * 255 + safe // 2) // safe, 255)
    out[..., :3] = np.where(alpha == 0, 0, straight).astype(np.uint8)
    return out


class PngCodec:
    """PNG adapter built on Pillow.

    Only pixel data and, when the image carries one, its ICC profile are
    written, so the stored reference decodes to the same sRGB buffer.
    """

    extension = "png"

    def __init__(self, compress_level: int = 6) -> None:
        self.compress_level = compress_level

    def encode(self, buffer: PixelBuffer) -> bytes:
        img = Image.fromarray(unpremultiply(buffer.pixels))
        return self.encode_image(img)

    def encode_image(self, image: Image.Image) -> bytes:
        """Encode a live image.

        Raises:
            ConversionError: ZERO_* for degenerate bounds, PNG_DATA_CONVERSION_FAILED
                when the encoder rejects the image.
        """
        validate_dimensions(*image.size)
        buf = io.BytesIO()
        try:
            image.save(buf, format="PNG", compress_level=self.compress_level)
        except (OSError, ValueError, KeyError, SystemError) as exc:
            log.debug("png encode failed for mode %s: %s", image.mode, exc)
            raise ConversionError(ConversionErrorKind.PNG_DATA_CONVERSION_FAILED) from exc
        return buf.getvalue()

    def decode(self, source: ImageSource) -> PixelBuffer:
        return decode_image(source)
