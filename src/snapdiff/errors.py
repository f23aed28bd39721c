"""Decode/encode failures raised before any pixel comparison runs."""

from __future__ import annotations

from enum import Enum


class ConversionErrorKind(str, Enum):
    """Why an image could not be turned into a comparable pixel buffer."""

    INVALID_IMAGE_DATA = "invalid_image_data"
    RASTERIZATION_FAILED = "rasterization_failed"
    PNG_DATA_CONVERSION_FAILED = "png_data_conversion_failed"
    ZERO_WIDTH = "zero_width"
    ZERO_HEIGHT = "zero_height"
    ZERO_SIZE = "zero_size"


_MESSAGES: dict[ConversionErrorKind, str] = {
    ConversionErrorKind.INVALID_IMAGE_DATA: "Snapshot data is not a valid image",
    ConversionErrorKind.RASTERIZATION_FAILED: "Snapshot could not be processed",
    ConversionErrorKind.PNG_DATA_CONVERSION_FAILED: "Snapshot could not be processed",
    ConversionErrorKind.ZERO_WIDTH: "Snapshot has a width of zero",
    ConversionErrorKind.ZERO_HEIGHT: "Snapshot has a height of zero",
    ConversionErrorKind.ZERO_SIZE: "Snapshot is empty",
}


class ConversionError(Exception):
    """Image could not be decoded, rasterized, or encoded.

    ``str(err)`` is the user-facing message for ``err.kind``.
    """

    def __init__(self, kind: ConversionErrorKind) -> None:
        super().__init__(_MESSAGES[kind])
        self.kind = kind

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]
