"""Tiered image comparison: exact, re-encoded, perceptual, byte threshold.

Tiers run in a fixed order and the first one that reaches a verdict wins:

1. size check (pixel units) short-circuits with ``UnequalSize``;
2. exact byte comparison of the normalized buffers;
3. the candidate is round-tripped through the reference codec and compared
   exactly again, absorbing encoder noise (runs even at precision 1);
4. with both precisions at 1 nothing more can match;
5. perceptual metric when ``perceptual_precision < 1`` and one is available,
   otherwise the differing-byte budget derived from ``precision``.
"""

from __future__ import annotations

import logging

from PIL import Image

from snapdiff.buffer import ImageSource, PixelBuffer, load_image
from snapdiff.codec import Codec, PngCodec
from snapdiff.errors import ConversionError
from snapdiff.perceptual import (
    PerceptualFailure,
    PerceptualMatch,
    PerceptualMeasurement,
    PerceptualMetric,
    PerceptualNoMatch,
    lab_delta_e,
)
from snapdiff.result import (
    ComparisonResult,
    ContextConversionFailed,
    IsMatching,
    IsNotMatching,
    PerceptualComparisonFailed,
    UnequalSize,
    UnmatchedPrecision,
    UnmatchedPrecisions,
)

log = logging.getLogger(__name__)


def check_precision(name: str, value: float) -> float:
    """Return *value* as float, rejecting anything outside [0, 1]."""
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be within [0, 1], got {value}")
    return value


def check_size(reference: PixelBuffer, candidate: PixelBuffer) -> UnequalSize | None:
    if reference.size != candidate.size:
        return UnequalSize(old=reference.size, new=candidate.size)
    return None


def compare_exact(reference: PixelBuffer, candidate: PixelBuffer) -> bool:
    """Byte-for-byte comparison of two same-size buffers."""
    return reference.tobytes() == candidate.tobytes()


def reencode(candidate: Image.Image, codec: Codec) -> PixelBuffer:
    """Round-trip a candidate image through the reference codec."""
    return codec.decode(codec.encode_image(candidate))


def compare_reencoded(reference: PixelBuffer, reencoded: PixelBuffer) -> bool:
    return reencoded.size == reference.size and compare_exact(reference, reencoded)


def compare_threshold(
    reference: PixelBuffer, candidate: PixelBuffer, precision: float
) -> ComparisonResult:
    """Count differing bytes against the budget ``(1 - precision) * byte_count``.

    Bytes, not pixels: a pixel differing in one channel uses one byte of
    budget out of four.
    """
    byte_count = reference.byte_count
    threshold = int((1 - precision) * byte_count)
    different = int((reference.pixels != candidate.pixels).sum())
    log.debug("threshold tier: %d/%d bytes differ, budget %d", different, byte_count, threshold)
    if different > threshold:
        actual = 1 - different / byte_count
        return UnmatchedPrecision(expected=precision, actual=actual)
    return IsMatching()


def compare_perceptual(
    reference: PixelBuffer,
    candidate: PixelBuffer,
    precision: float,
    perceptual_precision: float,
    metric: PerceptualMetric,
) -> ComparisonResult:
    """Map the perceptual metric's outcome onto a comparison result."""
    try:
        outcome = metric(reference, candidate, precision, perceptual_precision)
    except Exception:  # noqa: BLE001
        log.warning("perceptual metric raised", exc_info=True)
        return PerceptualComparisonFailed()

    match outcome:
        case PerceptualMatch():
            return IsMatching()
        case PerceptualNoMatch():
            return IsNotMatching()
        case PerceptualFailure(reason=reason):
            log.warning("perceptual comparison failed: %s", reason)
            return PerceptualComparisonFailed()
        case PerceptualMeasurement():
            return UnmatchedPrecisions(
                expected_pixel_precision=precision,
                actual_pixel_precision=outcome.actual_pixel_precision,
                expected_perceptual_precision=perceptual_precision,
                actual_perceptual_precision=outcome.actual_perceptual_precision,
            )
        case _:
            raise TypeError(f"unexpected perceptual outcome: {outcome!r}")


def compare(
    reference: ImageSource,
    candidate: ImageSource,
    *,
    precision: float = 1.0,
    perceptual_precision: float = 1.0,
    codec: Codec | None = None,
    perceptual_metric: PerceptualMetric | None = lab_delta_e,
) -> ComparisonResult:
    """Compare a candidate image against a reference image.

    Args:
        reference: Stored reference (encoded bytes or a loaded image).
        candidate: Freshly captured image (encoded bytes or a live image).
        precision: Share of bytes that must match exactly.
        perceptual_precision: Per-pixel perceptual similarity floor.
        codec: Codec used for stored references (PNG by default).
        perceptual_metric: Perceptual primitive, or None when unavailable.

    Returns:
        The comparison result. Mismatches are returned, never raised.

    Raises:
        ConversionError: If either image cannot be decoded.
        ValueError: If a precision is outside [0, 1].
    """
    precision = check_precision("precision", precision)
    perceptual_precision = check_precision("perceptual_precision", perceptual_precision)
    codec = codec or PngCodec()

    reference_buf = codec.decode(reference)
    candidate_img = load_image(candidate)
    try:
        candidate_buf = PixelBuffer.from_image(candidate_img)
        return _compare_buffers(
            reference_buf,
            candidate_buf,
            candidate_img,
            precision,
            perceptual_precision,
            codec,
            perceptual_metric,
        )
    finally:
        if candidate_img is not candidate:
            candidate_img.close()


def _compare_buffers(
    reference: PixelBuffer,
    candidate: PixelBuffer,
    candidate_img: Image.Image,
    precision: float,
    perceptual_precision: float,
    codec: Codec,
    perceptual_metric: PerceptualMetric | None,
) -> ComparisonResult:
    unequal = check_size(reference, candidate)
    if unequal is not None:
        log.debug("size tier: %s vs %s", unequal.old, unequal.new)
        return unequal

    if compare_exact(reference, candidate):
        log.debug("exact tier matched")
        return IsMatching()

    try:
        reencoded = reencode(candidate_img, codec)
    except ConversionError as exc:
        log.warning("re-encoding candidate failed: %s", exc)
        return ContextConversionFailed()
    if compare_reencoded(reference, reencoded):
        log.debug("re-encode tier matched")
        return IsMatching()
    if reencoded.size != reference.size:
        return ContextConversionFailed()

    if precision >= 1 and perceptual_precision >= 1:
        log.debug("exact precision required, buffers differ")
        return IsNotMatching()

    if perceptual_precision < 1 and perceptual_metric is not None:
        log.debug("perceptual tier: precision=%s perceptual=%s", precision, perceptual_precision)
        return compare_perceptual(
            reference, candidate, precision, perceptual_precision, perceptual_metric
        )
    return compare_threshold(reference, reencoded, precision)
