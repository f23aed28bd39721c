"""Comparison settings, passed explicitly instead of living in globals."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path

ENV_PRECISION = "SNAPDIFF_PRECISION"
ENV_PERCEPTUAL_PRECISION = "SNAPDIFF_PERCEPTUAL_PRECISION"
ENV_SCALE = "SNAPDIFF_SCALE"
ENV_DIFF_TOOL = "SNAPDIFF_DIFF_TOOL"


@dataclass(frozen=True)
class SnapshotConfig:
    """Settings for one image comparison.

    Attributes:
        precision: Share of bytes that must match exactly.
        perceptual_precision: Per-pixel perceptual similarity floor; 1 disables it.
        scale: Density the stored reference was captured at.
        diff_tool: External diff command shown next to written artifacts.
        perceptual: Whether the built-in perceptual metric may be used.
    """

    precision: float = 1.0
    perceptual_precision: float = 1.0
    scale: float = 1.0
    diff_tool: str | None = None
    perceptual: bool = True

    def __post_init__(self) -> None:
        for name in ("precision", "perceptual_precision"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SnapshotConfig:
        """Build a config from SNAPDIFF_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            precision=_env_float(env, ENV_PRECISION, 1.0),
            perceptual_precision=_env_float(env, ENV_PERCEPTUAL_PRECISION, 1.0),
            scale=_env_float(env, ENV_SCALE, 1.0),
            diff_tool=env.get(ENV_DIFF_TOOL) or None,
        )

    def with_overrides(self, **overrides: object) -> SnapshotConfig:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)  # type: ignore[arg-type]


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def diff_tool_command(config: SnapshotConfig, reference: Path, failure: Path) -> str | None:
    """Render the configured diff tool invocation, or None when unset."""
    if not config.diff_tool:
        return None
    return f'{config.diff_tool} "{reference}" "{failure}"'

