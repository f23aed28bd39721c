"""Perceptual color-distance metric.

The engine talks to any callable matching :class:`PerceptualMetric`. The
default, :func:`lab_delta_e`, measures CIE94 delta E between the two
buffers in CIE L*a*b* space. A delta E around 1-2 is the limit of what a
human eye notices, so a perceptual precision of 0.98-0.99 approximates
"looks identical".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

import numpy as np

from snapdiff.buffer import PixelBuffer


@dataclass(frozen=True)
class PerceptualMatch:
    pass


@dataclass(frozen=True)
class PerceptualNoMatch:
    pass


@dataclass(frozen=True)
class PerceptualFailure:
    reason: str


@dataclass(frozen=True)
class PerceptualMeasurement:
    """Measured precisions when the pixel precision floor was not met."""

    actual_pixel_precision: float
    actual_perceptual_precision: float


PerceptualOutcome = Union[
    PerceptualMatch, PerceptualNoMatch, PerceptualFailure, PerceptualMeasurement
]


class PerceptualMetric(Protocol):
    def __call__(
        self,
        reference: PixelBuffer,
        candidate: PixelBuffer,
        pixel_precision: float,
        perceptual_precision: float,
    ) -> PerceptualOutcome: ...


# sRGB (D65) -> XYZ
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ]
)
_D65_WHITE = np.array([0.95047, 1.0, 1.08883])
_EPSILON = (6 / 29) ** 3

# CIE94 graphic-arts weights
_K1 = 0.045
_K2 = 0.015


def to_lab(buffer: PixelBuffer) -> np.ndarray:
    """Convert a premultiplied buffer to an ``(h, w, 3)`` float L*a*b* array.

    Premultiplied color is the pixel composited over black.
    """
    rgb = buffer.pixels[..., :3].astype(np.float64) / 255.0
    linear = np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)
    xyz = linear @ _RGB_TO_XYZ.T / _D65_WHITE
    f = np.where(xyz > _EPSILON, np.cbrt(xyz), xyz / (3 * (6 / 29) ** 2) + 4 / 29)
    lab = np.empty_like(f)
    lab[..., 0] = 116.0 * f[..., 1] - 16.0
    lab[..., 1] = 500.0 * (f[..., 0] - f[..., 1])
    lab[..., 2] = 200.0 * (f[..., 1] - f[..., 2])
    return lab


def delta_e_cie94(lab_ref: np.ndarray, lab_new: np.ndarray) -> np.ndarray:
    """Per-pixel CIE94 delta E, weighted by the reference chroma."""
    d_l = lab_ref[..., 0] - lab_new[..., 0]
    c_ref = np.hypot(lab_ref[..., 1], lab_ref[..., 2])
    c_new = np.hypot(lab_new[..., 1], lab_new[..., 2])
    d_c = c_ref - c_new
    d_a = lab_ref[..., 1] - lab_new[..., 1]
    d_b = lab_ref[..., 2] - lab_new[..., 2]
    d_h_sq = np.maximum(d_a**2 + d_b**2 - d_c**2, 0.0)
    s_c = 1.0 + _K1 * c_ref
    s_h = 1.0 + _K2 * c_ref
    return np.sqrt(d_l**2 + (d_c / s_c) ** 2 + d_h_sq / s_h**2)


def lab_delta_e(
    reference: PixelBuffer,
    candidate: PixelBuffer,
    pixel_precision: float,
    perceptual_precision: float,
) -> PerceptualOutcome:
    """Judge two equal-size buffers by the share of perceptually close pixels.

    A pixel passes when its delta E is at most ``(1 - perceptual_precision) * 100``.
    The pair matches when the passing share reaches ``pixel_precision``.
    """
    if reference.size != candidate.size:
        return PerceptualFailure(f"size mismatch: {reference.size} vs {candidate.size}")

    delta = delta_e_cie94(to_lab(reference), to_lab(candidate))
    if not np.all(np.isfinite(delta)):
        return PerceptualFailure("non-finite color distance")

    threshold = (1.0 - perceptual_precision) * 100.0
    failing = int(np.count_nonzero(delta > threshold))
    actual_pixel_precision = 1.0 - failing / delta.size
    if actual_pixel_precision >= pixel_precision:
        return PerceptualMatch()

    max_delta = float(delta.max())
    return PerceptualMeasurement(
        actual_pixel_precision=actual_pixel_precision,
        actual_perceptual_precision=1.0 - max_delta / 100.0,
    )
