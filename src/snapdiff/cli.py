from __future__ import annotations

import logging

import click

from snapdiff import __version__
from snapdiff.commands.compare import compare_cmd
from snapdiff.commands.diff import diff_cmd


def _set_verbose(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Route snapdiff DEBUG logging to stderr when --verbose is given."""
    if not value:
        return
    logging.basicConfig(format="%(name)s: %(message)s")
    logging.getLogger("snapdiff").setLevel(logging.DEBUG)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="snapdiff")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_set_verbose,
    help="Log comparison tiers to stderr.",
)
def main() -> None:
    """snapdiff: pixel-level snapshot comparison."""


main.add_command(compare_cmd, name="compare")
main.add_command(diff_cmd, name="diff")


if __name__ == "__main__":
    main()
