"""JSON output for comparison results."""

from __future__ import annotations

import json
from typing import Any

import click
import numpy as np


def _encode(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


def write_json(data: dict[str, Any], *, indent: int = 2) -> None:
    """Echo a result dict as JSON, turning numpy scalars and paths into plain values."""
    click.echo(json.dumps(data, default=_encode, indent=indent))
