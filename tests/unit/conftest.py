"""Shared helpers for unit tests."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image


def png_bytes(img: Image.Image) -> bytes:
    """Encode *img* as PNG bytes."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def solid(
    color: tuple[int, ...] | int,
    size: tuple[int, int] = (4, 4),
    mode: str = "RGBA",
) -> Image.Image:
    """Create a solid-color image."""
    return Image.new(mode, size, color)


def with_block(
    img: Image.Image,
    box: tuple[int, int, int, int],
    color: tuple[int, ...],
) -> Image.Image:
    """Return a copy of *img* with the (left, top, right, bottom) box filled."""
    out = img.copy()
    out.paste(color, box)
    return out


def gradient(size: tuple[int, int] = (64, 64)) -> Image.Image:
    """Create an RGBA image whose pixels are all distinct enough to compress poorly."""
    img = Image.new("RGBA", size)
    w, h = size
    img.putdata(
        [((x * 7) % 256, (y * 13) % 256, (x * y) % 256, 255) for y in range(h) for x in range(w)]
    )
    return img


def write_png(tmp_path: Path, name: str, img: Image.Image) -> Path:
    """Save *img* under *tmp_path* and return its path."""
    p = tmp_path / name
    img.save(p, format="PNG")
    return p
