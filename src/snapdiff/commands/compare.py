"""snapdiff compare command -- tiered snapshot comparison."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from snapdiff.buffer import EncodedImage
from snapdiff.commands._helpers import err_exit, load_config
from snapdiff.config import diff_tool_command
from snapdiff.diffing import ImageDiffing
from snapdiff.errors import ConversionError
from snapdiff.formatters.json_fmt import write_json
from snapdiff.result import failure_message, needs_diff, result_to_dict

_PRECISION = click.FloatRange(0.0, 1.0)


@click.command("compare")
@click.argument("reference", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--precision",
    default=None,
    type=_PRECISION,
    help="Share of bytes that must match (default: $SNAPDIFF_PRECISION or 1).",
)
@click.option(
    "--perceptual-precision",
    default=None,
    type=_PRECISION,
    help="Per-pixel perceptual similarity floor (default: 1, disabled).",
)
@click.option("--scale", default=None, type=click.FloatRange(min=0.0, min_open=True))
@click.option("--no-perceptual", is_flag=True, help="Use the byte threshold only.")
@click.option(
    "--artifacts",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Write reference/failure/difference PNGs here on mismatch.",
)
@click.option("--diff-tool", default=None, metavar="CMD", help="Diff command to print.")
@click.option("--json", "use_json", is_flag=True, help="JSON output.")
def compare_cmd(
    reference: Path,
    candidate: Path,
    precision: float | None,
    perceptual_precision: float | None,
    scale: float | None,
    no_perceptual: bool,
    artifacts: Path | None,
    diff_tool: str | None,
    use_json: bool,
) -> None:
    """Compare CANDIDATE against the REFERENCE snapshot.

    Exit 0 if the snapshot matches, exit 1 if it does not,
    exit 2 on error (undecodable or empty image, bad settings).
    """
    config = load_config(
        precision=precision,
        perceptual_precision=perceptual_precision,
        scale=scale,
        diff_tool=diff_tool,
        perceptual=False if no_perceptual else None,
    )
    diffing = ImageDiffing.from_config(config)
    ref = EncodedImage(reference.read_bytes(), scale=config.scale)
    new = EncodedImage(candidate.read_bytes(), scale=config.scale)

    try:
        result = diffing.compare(ref, new)
    except ConversionError as exc:
        err_exit(str(exc))

    message = failure_message(result)
    written: dict[str, Path] = {}
    if message is not None and artifacts is not None and needs_diff(result):
        for attachment in diffing.attachments(ref, new):
            written[attachment.name] = attachment.save(artifacts)
    command = None
    if written:
        command = diff_tool_command(config, written["reference"], written["failure"])

    if use_json:
        data = result_to_dict(result)
        data["precision"] = config.precision
        data["perceptual_precision"] = config.perceptual_precision
        data["artifacts"] = {name: str(path) for name, path in written.items()}
        data["diff_command"] = command
        write_json(data)
    elif message is None:
        click.echo("match")
    else:
        click.echo(message)
        for name, path in written.items():
            click.echo(f"  {name}: {path}")
        if command:
            click.echo(f"  {command}")

    sys.exit(0 if message is None else 1)
