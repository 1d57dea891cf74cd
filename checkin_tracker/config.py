from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .env import get_env

try:  # pragma: no cover - Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib  # type: ignore


@dataclass(frozen=True)
class MeasurementRule:
    """Accepted range (inclusive) and the week-on-week change that earns a warning."""

    minimum: float
    maximum: float
    warning_threshold: float  # percent


DEFAULT_MEASUREMENT_RULES: dict[str, MeasurementRule] = {
    "weight": MeasurementRule(minimum=30, maximum=250, warning_threshold=5),  # kg
    "bodyFat": MeasurementRule(minimum=3, maximum=50, warning_threshold=10),  # %
    "chest": MeasurementRule(minimum=60, maximum=160, warning_threshold=5),  # cm
    "waist": MeasurementRule(minimum=50, maximum=150, warning_threshold=5),
    "hips": MeasurementRule(minimum=70, maximum=170, warning_threshold=5),
    "arms": MeasurementRule(minimum=20, maximum=60, warning_threshold=10),
    "legs": MeasurementRule(minimum=30, maximum=90, warning_threshold=10),
}


@dataclass(frozen=True)
class ScoringOptions:
    clamp_lower: bool = True
    strict: bool = False


@dataclass(frozen=True)
class AppConfig:
    scoring: ScoringOptions = ScoringOptions()
    measurement_rules: Mapping[str, MeasurementRule] = field(
        default_factory=lambda: dict(DEFAULT_MEASUREMENT_RULES)
    )


def configure_logging() -> logging.Logger:
    """Apply CHECKIN_TRACKER_LOG_LEVEL (or LOG_LEVEL) to the package logger."""
    logger = logging.getLogger("checkin_tracker")
    level_name = get_env("LOG_LEVEL") or os.getenv("LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
        logger.setLevel(level)
    return logger


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/checkin_tracker.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in {"1", "true", "yes", "on"}:
            return True
        if text in {"0", "false", "no", "off"}:
            return False
    return default


def _coerce_scoring(raw: Mapping[str, Any] | None) -> ScoringOptions:
    base = ScoringOptions()
    if not raw:
        return base
    return ScoringOptions(
        clamp_lower=_coerce_bool(raw.get("clamp_lower"), base.clamp_lower),
        strict=_coerce_bool(raw.get("strict"), base.strict),
    )


def _coerce_rules(raw: Mapping[str, Any] | None) -> dict[str, MeasurementRule]:
    rules = dict(DEFAULT_MEASUREMENT_RULES)
    if not raw:
        return rules
    for name, section in raw.items():
        if not isinstance(section, Mapping):
            continue
        base = rules.get(name)
        try:
            minimum = float(section.get("min", base.minimum if base else 0.0))
            maximum = float(section.get("max", base.maximum if base else float("inf")))
            threshold = float(
                section.get("warning_threshold", base.warning_threshold if base else 2.0)
            )
        except (TypeError, ValueError):
            continue
        if minimum > maximum:
            continue
        rules[str(name)] = MeasurementRule(
            minimum=minimum, maximum=maximum, warning_threshold=threshold
        )
    return rules


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    scoring_section = raw.get("scoring")
    rules_section = raw.get("measurement_rules")
    return AppConfig(
        scoring=_coerce_scoring(scoring_section if isinstance(scoring_section, Mapping) else None),
        measurement_rules=_coerce_rules(rules_section if isinstance(rules_section, Mapping) else None),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    if not path:
        return AppConfig()
    data = _load_toml(path)
    return _build_config(data)


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "scoring": {
            "clamp_lower": config.scoring.clamp_lower,
            "strict": config.scoring.strict,
        },
        "measurement_rules": {
            name: {
                "min": rule.minimum,
                "max": rule.maximum,
                "warning_threshold": rule.warning_threshold,
            }
            for name, rule in config.measurement_rules.items()
        },
        "source": str(_config_path() or "defaults"),
    }
