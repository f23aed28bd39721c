"""snapdiff: pixel-level snapshot comparison for stored reference images."""

from importlib.metadata import PackageNotFoundError, version

from snapdiff.engine import compare
from snapdiff.result import failure_message

__all__ = ["__version__", "compare", "failure_message"]

try:
    __version__ = version("snapdiff")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
