"""Comparison outcomes and their failure messages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn, Union

from snapdiff.buffer import Size


@dataclass(frozen=True)
class IsMatching:
    pass


@dataclass(frozen=True)
class IsNotMatching:
    pass


@dataclass(frozen=True)
class UnequalSize:
    old: Size
    new: Size


@dataclass(frozen=True)
class UnmatchedPrecision:
    expected: float
    actual: float


@dataclass(frozen=True)
class UnmatchedPrecisions:
    expected_pixel_precision: float
    actual_pixel_precision: float
    expected_perceptual_precision: float
    actual_perceptual_precision: float


@dataclass(frozen=True)
class ContextConversionFailed:
    """The candidate could not be re-rendered into a comparable buffer."""


@dataclass(frozen=True)
class PerceptualComparisonFailed:
    """The perceptual metric itself errored."""


ComparisonResult = Union[
    IsMatching,
    IsNotMatching,
    UnequalSize,
    UnmatchedPrecision,
    UnmatchedPrecisions,
    ContextConversionFailed,
    PerceptualComparisonFailed,
]


def _unhandled(result: NoReturn) -> NoReturn:
    raise TypeError(f"unhandled comparison result: {result!r}")


def failure_message(result: ComparisonResult) -> str | None:
    """Return the failure message for a result, or None when it matches."""
    match result:
        case IsMatching():
            return None
        case IsNotMatching():
            return "Snapshot does not match reference"
        case UnequalSize(old=old, new=new):
            return f"Snapshot size {new} is unequal to expected size {old}"
        case UnmatchedPrecision(expected=expected, actual=actual):
            return f"Actual image precision {actual} is less than expected {expected}"
        case UnmatchedPrecisions():
            return (
                f"The percentage of pixels that match {result.actual_pixel_precision} "
                f"is less than expected {result.expected_pixel_precision}\n"
                f"The lowest perceptual color precision {result.actual_perceptual_precision} "
                f"is less than expected {result.expected_perceptual_precision}"
            )
        case ContextConversionFailed():
            return "Core Graphics failure"
        case PerceptualComparisonFailed():
            return "Perceptual comparison failed"
        case _:
            _unhandled(result)


def needs_diff(result: ComparisonResult) -> bool:
    """True when a difference image should accompany the failure."""
    match result:
        case IsNotMatching() | UnequalSize() | UnmatchedPrecision() | UnmatchedPrecisions():
            return True
        case IsMatching() | ContextConversionFailed() | PerceptualComparisonFailed():
            return False
        case _:
            _unhandled(result)


def is_match(result: ComparisonResult) -> bool:
    return isinstance(result, IsMatching)


def result_to_dict(result: ComparisonResult) -> dict[str, object]:
    """Flatten a result for JSON output."""
    data: dict[str, object] = {
        "result": _RESULT_NAMES[type(result)],
        "matching": is_match(result),
        "message": failure_message(result),
    }
    if isinstance(result, UnequalSize):
        data["old_size"] = list(result.old)
        data["new_size"] = list(result.new)
    elif isinstance(result, UnmatchedPrecision):
        data["expected_precision"] = result.expected
        data["actual_precision"] = result.actual
    elif isinstance(result, UnmatchedPrecisions):
        data["expected_pixel_precision"] = result.expected_pixel_precision
        data["actual_pixel_precision"] = result.actual_pixel_precision
        data["expected_perceptual_precision"] = result.expected_perceptual_precision
        data["actual_perceptual_precision"] = result.actual_perceptual_precision
    return data


_RESULT_NAMES: dict[type, str] = {
    IsMatching: "is_matching",
    IsNotMatching: "is_not_matching",
    UnequalSize: "unequal_size",
    UnmatchedPrecision: "unmatched_precision",
    UnmatchedPrecisions: "unmatched_precisions",
    ContextConversionFailed: "context_conversion_failed",
    PerceptualComparisonFailed: "perceptual_comparison_failed",
}
