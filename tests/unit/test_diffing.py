"""Tests for the ImageDiffing strategy and failure reports."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import png_bytes, solid, with_block
from PIL import Image

from snapdiff.buffer import EncodedImage, Size
from snapdiff.codec import PngCodec
from snapdiff.config import SnapshotConfig
from snapdiff.diffing import Attachment, ImageDiffing
from snapdiff.errors import ConversionError, ConversionErrorKind
from snapdiff.result import ContextConversionFailed, IsNotMatching, UnequalSize


class _BrokenEncoderCodec(PngCodec):
    def encode_image(self, image: Image.Image) -> bytes:
        if image.getpixel((0, 0)) == (255, 0, 0, 255):
            raise ConversionError(ConversionErrorKind.PNG_DATA_CONVERSION_FAILED)
        return super().encode_image(image)


class TestDiff:
    def test_match_returns_none(self) -> None:
        data = png_bytes(solid((1, 2, 3, 255)))
        assert ImageDiffing().diff(data, data) is None

    def test_mismatch_report_with_attachments(self) -> None:
        ref = png_bytes(solid((0, 0, 0, 255)))
        new = png_bytes(solid((255, 255, 255, 255)))
        report = ImageDiffing().diff(ref, new)
        assert report is not None
        assert report.message == "Snapshot does not match reference"
        assert report.result == IsNotMatching()
        assert [a.name for a in report.attachments] == ["reference", "failure", "difference"]
        assert report.attachments[2].image.getpixel((0, 0)) == (255, 255, 255)

    def test_unequal_size_report(self) -> None:
        ref = png_bytes(solid((0, 0, 0, 255), size=(4, 4)))
        new = png_bytes(solid((0, 0, 0, 255), size=(6, 4)))
        report = ImageDiffing().diff(ref, new)
        assert report is not None
        assert report.result == UnequalSize(Size(4, 4), Size(6, 4))
        assert report.message == "Snapshot size 6x4 is unequal to expected size 4x4"
        assert report.attachments[2].image.size == (6, 4)

    def test_precision_report(self) -> None:
        base = solid((0, 0, 0, 255), size=(10, 10))
        changed = with_block(base, (0, 0, 5, 5), (255, 255, 255, 255))
        report = ImageDiffing(precision=0.9).diff(png_bytes(base), png_bytes(changed))
        assert report is not None
        assert report.message.startswith("Actual image precision ")
        assert len(report.attachments) == 3

    def test_conversion_error_message_verbatim(self) -> None:
        ref = png_bytes(solid((0, 0, 0, 255)))
        report = ImageDiffing().diff(ref, Image.new("RGBA", (0, 0)))
        assert report is not None
        assert report.message == "Snapshot is empty"
        assert report.result is None
        assert report.attachments == []

    def test_engine_failure_has_no_attachments(self) -> None:
        ref = png_bytes(solid((0, 0, 0, 255)))
        diffing = ImageDiffing(codec=_BrokenEncoderCodec())
        report = diffing.diff(ref, solid((255, 0, 0, 255)))
        assert report is not None
        assert report.result == ContextConversionFailed()
        assert report.message == "Core Graphics failure"
        assert report.attachments == []

    def test_scaled_reference_difference_at_full_density(self) -> None:
        ref = EncodedImage(png_bytes(solid((0, 0, 0, 255), size=(8, 8))), scale=2.0)
        new = EncodedImage(png_bytes(solid((0, 0, 0, 255), size=(2, 2))), scale=1.0)
        report = ImageDiffing().diff(ref, new)
        assert report is not None
        assert report.attachments[2].image.size == (8, 8)


class TestToFromData:
    def test_to_data_roundtrip(self) -> None:
        diffing = ImageDiffing(scale=2.0)
        img = solid((10, 20, 30, 255))
        stored = diffing.from_data(diffing.to_data(img))
        assert stored.scale == 2.0
        assert diffing.diff(stored, img) is None

    @pytest.mark.parametrize(
        ("size", "kind"),
        [
            ((0, 0), ConversionErrorKind.ZERO_SIZE),
            ((0, 1), ConversionErrorKind.ZERO_WIDTH),
            ((1, 0), ConversionErrorKind.ZERO_HEIGHT),
        ],
    )
    def test_to_data_degenerate(self, size: tuple[int, int], kind: ConversionErrorKind) -> None:
        with pytest.raises(ConversionError) as exc_info:
            ImageDiffing().to_data(Image.new("RGBA", size))
        assert exc_info.value.kind is kind

    def test_from_data_invalid(self) -> None:
        with pytest.raises(ConversionError) as exc_info:
            ImageDiffing().from_data(b"\x89PNG broken")
        assert exc_info.value.kind is ConversionErrorKind.INVALID_IMAGE_DATA

    def test_extension(self) -> None:
        assert ImageDiffing().extension == "png"


class TestConfiguration:
    def test_from_config(self) -> None:
        cfg = SnapshotConfig(precision=0.9, perceptual_precision=0.98, scale=3.0)
        diffing = ImageDiffing.from_config(cfg)
        assert diffing.precision == 0.9
        assert diffing.perceptual_precision == 0.98
        assert diffing.scale == 3.0
        assert diffing.perceptual_metric is not None

    def test_from_config_without_perceptual(self) -> None:
        diffing = ImageDiffing.from_config(SnapshotConfig(perceptual=False))
        assert diffing.perceptual_metric is None

    def test_invalid_precision(self) -> None:
        with pytest.raises(ValueError):
            ImageDiffing(precision=1.1)

    def test_invalid_scale(self) -> None:
        with pytest.raises(ValueError, match="scale"):
            ImageDiffing(scale=0)


class TestAttachment:
    def test_save(self, tmp_path: Path) -> None:
        path = Attachment("difference", solid((1, 2, 3, 255))).save(tmp_path / "out")
        assert path == tmp_path / "out" / "difference.png"
        with Image.open(path) as img:
            assert img.size == (4, 4)

    def test_png_bytes(self) -> None:
        data = Attachment("reference", solid((1, 2, 3, 255))).png_bytes()
        assert data.startswith(b"\x89PNG")
