"""Tests for SnapshotConfig and environment loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from snapdiff.config import SnapshotConfig, diff_tool_command


class TestDefaults:
    def test_defaults(self) -> None:
        cfg = SnapshotConfig()
        assert cfg.precision == 1.0
        assert cfg.perceptual_precision == 1.0
        assert cfg.scale == 1.0
        assert cfg.diff_tool is None
        assert cfg.perceptual is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"precision": 1.01},
            {"precision": -0.5},
            {"perceptual_precision": 3.0},
            {"scale": 0.0},
            {"scale": -1.0},
        ],
    )
    def test_out_of_range(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            SnapshotConfig(**kwargs)  # type: ignore[arg-type]


class TestFromEnv:
    def test_empty_env(self) -> None:
        assert SnapshotConfig.from_env({}) == SnapshotConfig()

    def test_reads_all_variables(self) -> None:
        env = {
            "SNAPDIFF_PRECISION": "0.99",
            "SNAPDIFF_PERCEPTUAL_PRECISION": "0.98",
            "SNAPDIFF_SCALE": "2",
            "SNAPDIFF_DIFF_TOOL": "ksdiff",
        }
        cfg = SnapshotConfig.from_env(env)
        assert cfg == SnapshotConfig(
            precision=0.99, perceptual_precision=0.98, scale=2.0, diff_tool="ksdiff"
        )

    def test_blank_values_use_defaults(self) -> None:
        cfg = SnapshotConfig.from_env({"SNAPDIFF_PRECISION": " ", "SNAPDIFF_DIFF_TOOL": ""})
        assert cfg.precision == 1.0
        assert cfg.diff_tool is None

    def test_non_numeric_names_variable(self) -> None:
        with pytest.raises(ValueError, match="SNAPDIFF_PRECISION"):
            SnapshotConfig.from_env({"SNAPDIFF_PRECISION": "high"})

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SNAPDIFF_SCALE", "3")
        assert SnapshotConfig.from_env().scale == 3.0


class TestOverrides:
    def test_none_values_ignored(self) -> None:
        cfg = SnapshotConfig(precision=0.5).with_overrides(precision=None, scale=2.0)
        assert cfg.precision == 0.5
        assert cfg.scale == 2.0

    def test_override_validated(self) -> None:
        with pytest.raises(ValueError):
            SnapshotConfig().with_overrides(precision=2.0)


class TestDiffToolCommand:
    def test_unset(self) -> None:
        assert diff_tool_command(SnapshotConfig(), Path("a.png"), Path("b.png")) is None

    def test_rendered(self) -> None:
        cfg = SnapshotConfig(diff_tool="ksdiff")
        cmd = diff_tool_command(cfg, Path("/tmp/reference.png"), Path("/tmp/failure.png"))
        assert cmd == 'ksdiff "/tmp/reference.png" "/tmp/failure.png"'
