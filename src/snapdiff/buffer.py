"""Normalized RGBA pixel buffers decoded from encoded image blobs.

Every buffer is 8-bit RGBA with premultiplied alpha in sRGB, whatever the
source encoder produced, so that two buffers can be compared byte for byte.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import NamedTuple, Union

import numpy as np
from PIL import Image, ImageCms, UnidentifiedImageError

from snapdiff.errors import ConversionError, ConversionErrorKind

log = logging.getLogger(__name__)

BYTES_PER_PIXEL = 4

_SRGB_PROFILE = ImageCms.createProfile("sRGB")


class Size(NamedTuple):
    """Width and height in pixels (or points, for logical sizes)."""

    width: float
    height: float

    def __str__(self) -> str:
        return f"{_fmt_dim(self.width)}x{_fmt_dim(self.height)}"


def _fmt_dim(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


@dataclass(frozen=True)
class EncodedImage:
    """Encoded raster bytes plus the density they were captured at."""

    data: bytes
    scale: float = 1.0

    def logical_size(self, pixel_size: Size) -> Size:
        """Return the point size for a decoded pixel size at this scale."""
        return Size(pixel_size.width / self.scale, pixel_size.height / self.scale)


ImageSource = Union[bytes, EncodedImage, Image.Image]


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Owned ``(height, width, 4)`` uint8 array of premultiplied RGBA."""

    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        expected = (self.height, self.width, BYTES_PER_PIXEL)
        if self.pixels.shape != expected or self.pixels.dtype != np.uint8:
            raise ValueError(
                f"pixel array {self.pixels.shape}/{self.pixels.dtype} does not match "
                f"{self.width}x{self.height} RGBA8"
            )

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def byte_count(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    @classmethod
    def from_image(cls, image: Image.Image) -> PixelBuffer:
        """Render a loaded Pillow image into the canonical buffer layout."""
        rgba = _to_srgb_rgba(image)
        arr = np.array(rgba, dtype=np.uint8)
        if arr.ndim != 3 or arr.shape[2] != BYTES_PER_PIXEL:
            raise ConversionError(ConversionErrorKind.RASTERIZATION_FAILED)
        return cls(width=rgba.width, height=rgba.height, pixels=premultiply(arr))


def premultiply(rgba: np.ndarray) -> np.ndarray:
    """Return a copy of straight-alpha RGBA data with color scaled by alpha."""
    out = rgba.copy()
    alpha = rgba[..., 3:4].astype(np.uint16)
    color = rgba[..., :3].astype(np.uint16)
    out[..., :3] = ((color * alpha + 127) // 255).astype(np.uint8)
    return out


def validate_dimensions(width: float, height: float) -> None:
    """Raise for degenerate bounds; both-zero wins over a single zero."""
    if width == 0 and height == 0:
        raise ConversionError(ConversionErrorKind.ZERO_SIZE)
    if width == 0:
        raise ConversionError(ConversionErrorKind.ZERO_WIDTH)
    if height == 0:
        raise ConversionError(ConversionErrorKind.ZERO_HEIGHT)


def open_image(data: bytes) -> Image.Image:
    """Parse and fully load encoded bytes.

    Raises:
        ConversionError: INVALID_IMAGE_DATA for malformed or truncated data.
    """
    try:
        img = Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        log.debug("cannot identify image data: %s", exc)
        raise ConversionError(ConversionErrorKind.INVALID_IMAGE_DATA) from exc
    try:
        img.load()
    except (OSError, ValueError, SyntaxError) as exc:
        img.close()
        log.debug("cannot load image data: %s", exc)
        raise ConversionError(ConversionErrorKind.INVALID_IMAGE_DATA) from exc
    return img


def load_image(source: ImageSource) -> Image.Image:
    """Return a loaded Pillow image with non-degenerate bounds.

    Live images are checked for degenerate bounds before they are rendered;
    encoded bytes must parse as a raster image first. Images opened from
    bytes are owned by the caller, who should close them.

    Raises:
        ConversionError: On degenerate bounds or undecodable data.
    """
    if isinstance(source, Image.Image):
        validate_dimensions(*source.size)
        try:
            source.load()
        except (OSError, ValueError) as exc:
            raise ConversionError(ConversionErrorKind.RASTERIZATION_FAILED) from exc
        return source

    data = source.data if isinstance(source, EncodedImage) else source
    img = open_image(data)
    try:
        validate_dimensions(*img.size)
    except ConversionError:
        img.close()
        raise
    return img


def decode_image(source: ImageSource) -> PixelBuffer:
    """Decode any accepted image source into a PixelBuffer."""
    img = load_image(source)
    try:
        return PixelBuffer.from_image(img)
    finally:
        if img is not source:
            img.close()


_HIGH_BIT_DEPTH_MODES = ("I", "I;16", "I;16L", "I;16B", "I;16N")


def _to_eight_bit(image: Image.Image) -> Image.Image:
    """Scale 16-bit and 32-bit integer grayscale down to 8-bit mode L."""
    if image.mode not in _HIGH_BIT_DEPTH_MODES:
        return image
    values = np.clip(np.asarray(image).astype(np.int64), 0, 0xFFFF)
    return Image.fromarray((values >> 8).astype(np.uint8))


def _to_srgb_rgba(image: Image.Image) -> Image.Image:
    image = _to_eight_bit(image)
    icc = image.info.get("icc_profile")
    if icc and image.mode in ("RGB", "RGBA"):
        try:
            src_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc))
            out_mode = image.mode
            image = ImageCms.profileToProfile(
                image, src_profile, _SRGB_PROFILE, outputMode=out_mode
            )
        except (ImageCms.PyCMSError, OSError) as exc:
            log.warning("ignoring unusable ICC profile: %s", exc)
    if image.mode == "RGBA":
        return image
    try:
        return image.convert("RGBA")
    except (ValueError, OSError) as exc:
        raise ConversionError(ConversionErrorKind.RASTERIZATION_FAILED) from exc
