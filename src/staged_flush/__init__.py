"""Per-stream batch flush engine: buffer, stage, commit."""
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("staged-flush")
except PackageNotFoundError:  # pragma: no cover - during local dev without install
    __version__ = "0.0.0"

__all__ = ["__version__"]
