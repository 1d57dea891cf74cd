"""checkin_tracker package."""

from importlib import metadata
from typing import Any

try:
    __version__ = metadata.version("checkin-tracker")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for local edits
    __version__ = "0.0.0"

__all__ = ["app", "process_check_ins", "__version__"]


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name == "app":
        from .cli import app

        return app
    if name == "process_check_ins":
        from .services import process_check_ins

        return process_check_ins
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
