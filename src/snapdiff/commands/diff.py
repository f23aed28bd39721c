"""snapdiff diff command -- write the difference image only."""

from __future__ import annotations

from pathlib import Path

import click

from snapdiff.buffer import EncodedImage, load_image
from snapdiff.commands._helpers import err_exit
from snapdiff.diff_image import render_difference
from snapdiff.errors import ConversionError


@click.command("diff")
@click.argument("reference", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "-o",
    "--output",
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Difference PNG path.",
)
def diff_cmd(reference: Path, candidate: Path, output: Path) -> None:
    """Render the difference blend of REFERENCE and CANDIDATE.

    Images of different sizes are allowed; the output covers both.
    """
    try:
        old = load_image(EncodedImage(reference.read_bytes()))
        new = load_image(EncodedImage(candidate.read_bytes()))
    except ConversionError as exc:
        err_exit(str(exc))

    difference = render_difference(old, new)
    output.parent.mkdir(parents=True, exist_ok=True)
    difference.save(output, format="PNG")
    click.echo(f"difference: {output} ({difference.width}x{difference.height})")
