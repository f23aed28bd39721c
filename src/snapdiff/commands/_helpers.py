"""Shared CLI command helpers."""

from __future__ import annotations

import json
import sys
from typing import NoReturn

import click

from snapdiff.config import SnapshotConfig

__all__ = ["_json_mode", "err_exit", "load_config"]


def _json_mode() -> bool:
    """Return True if the current Click context has a JSON output flag set."""
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return False
    return bool(ctx.params.get("use_json"))


def err_exit(msg: str) -> NoReturn:
    """Print error (JSON or plain text based on context) and exit(2)."""
    if _json_mode():
        click.echo(json.dumps({"error": {"message": msg}}), err=True)
    else:
        click.echo(f"error: {msg}", err=True)
    sys.exit(2)


def load_config(**overrides: object) -> SnapshotConfig:
    """Read SNAPDIFF_* settings and apply CLI overrides, exiting 2 if invalid."""
    try:
        return SnapshotConfig.from_env().with_overrides(**overrides)
    except ValueError as exc:
        err_exit(str(exc))
