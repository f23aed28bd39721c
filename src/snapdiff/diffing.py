"""Image diffing strategy: encode snapshots, compare, and build failure reports."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image

from snapdiff.buffer import EncodedImage, ImageSource, load_image, open_image
from snapdiff.codec import Codec, PngCodec
from snapdiff.config import SnapshotConfig
from snapdiff.diff_image import render_difference
from snapdiff.engine import check_precision, compare
from snapdiff.errors import ConversionError
from snapdiff.perceptual import PerceptualMetric, lab_delta_e
from snapdiff.result import ComparisonResult, failure_message, needs_diff

log = logging.getLogger(__name__)

ATTACHMENT_NAMES = ("reference", "failure", "difference")


@dataclass
class Attachment:
    """Named image handed to whatever displays or stores failure artifacts."""

    name: str
    image: Image.Image

    def png_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def save(self, directory: Path) -> Path:
        """Write ``<name>.png`` into *directory* and return its path."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{self.name}.png"
        path.write_bytes(self.png_bytes())
        return path


@dataclass
class FailureReport:
    message: str
    result: ComparisonResult | None = None
    attachments: list[Attachment] = field(default_factory=list)


def _scale_of(source: ImageSource, default: float) -> float:
    if isinstance(source, EncodedImage):
        return source.scale
    return default


class ImageDiffing:
    """Pixel-diffing strategy for image snapshots.

    Args:
        precision: Share of bytes that must match exactly.
        perceptual_precision: Per-pixel perceptual similarity floor. 0.98-0.99
            mimics the precision of the human eye.
        scale: Density of stored reference images.
        codec: Reference codec (PNG by default).
        perceptual_metric: Perceptual primitive; None falls back to the byte
            threshold.
    """

    def __init__(
        self,
        precision: float = 1.0,
        perceptual_precision: float = 1.0,
        scale: float = 1.0,
        codec: Codec | None = None,
        perceptual_metric: PerceptualMetric | None = lab_delta_e,
    ) -> None:
        self.precision = check_precision("precision", precision)
        self.perceptual_precision = check_precision("perceptual_precision", perceptual_precision)
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = scale
        self.codec = codec or PngCodec()
        self.perceptual_metric = perceptual_metric

    @classmethod
    def from_config(cls, config: SnapshotConfig, codec: Codec | None = None) -> ImageDiffing:
        return cls(
            precision=config.precision,
            perceptual_precision=config.perceptual_precision,
            scale=config.scale,
            codec=codec,
            perceptual_metric=lab_delta_e if config.perceptual else None,
        )

    @property
    def extension(self) -> str:
        return self.codec.extension

    def to_data(self, image: Image.Image) -> bytes:
        """Encode a snapshot for storage.

        Raises:
            ConversionError: ZERO_SIZE / ZERO_WIDTH / ZERO_HEIGHT before encoding,
                PNG_DATA_CONVERSION_FAILED if the encoder fails.
        """
        return self.codec.encode_image(image)

    def from_data(self, data: bytes) -> EncodedImage:
        """Wrap stored bytes at the reference scale, checking that they decode."""
        open_image(data).close()
        return EncodedImage(data, scale=self.scale)

    def compare(self, reference: ImageSource, candidate: ImageSource) -> ComparisonResult:
        return compare(
            reference,
            candidate,
            precision=self.precision,
            perceptual_precision=self.perceptual_precision,
            codec=self.codec,
            perceptual_metric=self.perceptual_metric,
        )

    def diff(self, reference: ImageSource, candidate: ImageSource) -> FailureReport | None:
        """Compare and describe the failure, or return None on a match.

        Conversion errors become a report carrying the error message and no
        attachments.
        """
        try:
            result = self.compare(reference, candidate)
        except ConversionError as err:
            log.debug("conversion failed: %s", err.kind.value)
            return FailureReport(message=str(err))

        message = failure_message(result)
        if message is None:
            return None
        report = FailureReport(message=message, result=result)
        if needs_diff(result):
            report.attachments = self.attachments(reference, candidate)
        return report

    def attachments(self, reference: ImageSource, candidate: ImageSource) -> list[Attachment]:
        """Return the reference, failure, and difference images."""
        old = load_image(reference)
        new = load_image(candidate)
        difference = render_difference(
            old,
            new,
            reference_scale=_scale_of(reference, self.scale),
            candidate_scale=_scale_of(candidate, self.scale),
        )
        return [
            Attachment(name, image)
            for name, image in zip(ATTACHMENT_NAMES, (old, new, difference))
        ]
