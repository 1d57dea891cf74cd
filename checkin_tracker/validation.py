from __future__ import annotations

import math
from datetime import date
from typing import Iterable, Literal, Mapping, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_MEASUREMENT_RULES, MeasurementRule
from .models import ValidationError, ValidationResult

Trend = Literal["increasing", "decreasing", "stable"]

# Per-step change below which an unknown measurement counts as stable.
DEFAULT_TREND_THRESHOLD = 0.02


class MeasurementValidator:
    """
    Range and week-on-week change checks for body measurements.

    Instances are stateless apart from their rule table; build one per caller
    (usually from `get_config().measurement_rules`) and pass it where needed.
    """

    def __init__(self, rules: Mapping[str, MeasurementRule] | None = None) -> None:
        if rules is None:
            rules = DEFAULT_MEASUREMENT_RULES
        self.rules: Mapping[str, MeasurementRule] = dict(rules)

    def validate(
        self,
        measurement_type: str,
        value: float,
        previous_value: Optional[float] = None,
    ) -> ValidationResult:
        if not math.isfinite(value):
            return ValidationResult(
                is_valid=False,
                error=f"Value must be a finite number. Received {value} for {measurement_type}",
            )

        rule = self.rules.get(measurement_type)
        if rule is None:
            # Custom measurements pass through.
            return ValidationResult(is_valid=True)

        if value < rule.minimum:
            return ValidationResult(
                is_valid=False,
                error=f"Value is too low. Minimum {measurement_type} should be {_display(rule.minimum)}",
            )
        if value > rule.maximum:
            return ValidationResult(
                is_valid=False,
                error=f"Value is too high. Maximum {measurement_type} should be {_display(rule.maximum)}",
            )

        # A zero baseline has no meaningful percentage change.
        if previous_value and math.isfinite(previous_value):
            change = abs((value - previous_value) / previous_value * 100)
            if change > rule.warning_threshold:
                return ValidationResult(
                    is_valid=True,
                    warning=(
                        f"Large change detected ({change:.1f}% difference). "
                        "Please verify measurement."
                    ),
                )

        return ValidationResult(is_valid=True)

    def ensure_valid(
        self,
        measurement_type: str,
        value: float,
        previous_value: Optional[float] = None,
    ) -> ValidationResult:
        """Like `validate`, but raise `ValidationError` for out-of-range values."""
        result = self.validate(measurement_type, value, previous_value)
        if not result.is_valid:
            raise ValidationError(result.error or f"{measurement_type} is out of range.")
        return result

    def detect_trend(
        self,
        measurement_type: str,
        history: Iterable[Tuple[date, float]],
    ) -> Optional[Trend]:
        """
        Classify a measurement history as increasing, decreasing or stable.

        The history is ordered by date first; the average step between
        consecutive values is compared against the rule's warning threshold
        expressed as a fraction. Fewer than two points yield None.
        """
        ordered = sorted(history, key=lambda point: point[0])
        if len(ordered) < 2:
            return None

        steps = np.diff([float(value) for _, value in ordered])
        average_change = float(steps.mean())

        rule = self.rules.get(measurement_type)
        threshold = rule.warning_threshold / 100 if rule else DEFAULT_TREND_THRESHOLD

        if abs(average_change) < threshold:
            return "stable"
        return "increasing" if average_change > 0 else "decreasing"


def validate_measurement(
    measurement_type: str,
    value: float,
    previous_value: Optional[float] = None,
    *,
    rules: Mapping[str, MeasurementRule] | None = None,
) -> ValidationResult:
    """Check one measurement against the rule table (defaults when `rules` is None)."""
    return MeasurementValidator(rules).validate(measurement_type, value, previous_value)


def detect_trend(
    measurement_type: str,
    history: Sequence[Tuple[date, float]],
    *,
    rules: Mapping[str, MeasurementRule] | None = None,
) -> Optional[Trend]:
    return MeasurementValidator(rules).detect_trend(measurement_type, history)


def _display(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)
