"""Difference-blend visualization of two snapshots."""

from __future__ import annotations

import math

from PIL import Image, ImageChops


def _at_density(image: Image.Image, scale: float, density: float) -> Image.Image:
    if scale == density:
        return image
    factor = density / scale
    size = (math.ceil(image.width * factor), math.ceil(image.height * factor))
    return image.resize(size, Image.Resampling.NEAREST)


def _flatten(image: Image.Image, size: tuple[int, int]) -> Image.Image:
    canvas = Image.new("RGBA", size, (0, 0, 0, 255))
    canvas.alpha_composite(image.convert("RGBA"))
    return canvas.convert("RGB")


def _place(image: Image.Image, size: tuple[int, int]) -> tuple[Image.Image, Image.Image]:
    """Return the straight color and alpha of *image* on a transparent canvas."""
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(image.convert("RGBA"), (0, 0))
    return canvas.convert("RGB"), canvas.getchannel("A")


def render_difference(
    reference: Image.Image,
    candidate: Image.Image,
    *,
    reference_scale: float = 1.0,
    candidate_scale: float = 1.0,
) -> Image.Image:
    """Draw the reference over the candidate with a difference blend.

    The candidate is flattened onto an opaque black canvas covering the
    larger of both images at the higher of both densities. The reference is
    then blended in with its own alpha, so each channel becomes
    ``(1 - a) * candidate + a * |candidate - reference|``. Identical opaque
    pixels come out black; areas only one image covers show that image.
    """
    density = max(reference_scale, candidate_scale)
    reference = _at_density(reference, reference_scale, density)
    candidate = _at_density(candidate, candidate_scale, density)
    size = (max(reference.width, candidate.width), max(reference.height, candidate.height))
    backdrop = _flatten(candidate, size)
    color, alpha = _place(reference, size)
    return Image.composite(ImageChops.difference(backdrop, color), backdrop, alpha)
