from __future__ import annotations

import os

PRIMARY_PREFIX = "CHECKIN_TRACKER_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Only the `CHECKIN_TRACKER_` prefix is consulted; unset names fall back to
    `default`.
    """
    value = os.getenv(f"{PRIMARY_PREFIX}{name}")
    if value is not None:
        return value
    return default
