"""Category scores (0-100) derived from a single check-in."""

from __future__ import annotations

import math

from .models import CategoryScore, CheckInRecord, ValidationError

MAX_SCORE = 100

# Reference intakes and targets behind the linear formulas.
PROTEIN_TARGET_G = 180.0
CARBS_TARGET_G = 250.0
FATS_TARGET_G = 70.0
SESSIONS_TARGET = 4.0
SLEEP_TARGET_HOURS = 8.0
SCALE_MAX = 10.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (Python's round() is banker's)."""
    return int(math.floor(value + 0.5))


def _finalise(raw: float, *, clamp: bool) -> int:
    if not math.isfinite(raw):
        raise ValidationError(f"Score inputs must be finite numbers; got {raw}.")
    bounded = min(float(MAX_SCORE), raw)
    if clamp:
        bounded = max(0.0, bounded)
    return round_half_up(bounded)


def nutrition_score(
    calories: float,
    protein: float,
    carbs: float,
    fats: float,
    *,
    clamp: bool = True,
) -> int:
    """
    Weighted macro score: protein 40%, carbs 30%, fats 30% of their targets.

    Calories are accepted for signature symmetry with the check-in form but do
    not contribute.
    """
    raw = (
        (protein / PROTEIN_TARGET_G) * 40
        + (carbs / CARBS_TARGET_G) * 30
        + (fats / FATS_TARGET_G) * 30
    )
    return _finalise(raw, clamp=clamp)


def training_score(sessions: float, intensity: float, *, clamp: bool = True) -> int:
    raw = (sessions / SESSIONS_TARGET) * 50 + (intensity / SCALE_MAX) * 50
    return _finalise(raw, clamp=clamp)


def recovery_score(sleep: float, stress: float, energy: float, *, clamp: bool = True) -> int:
    """Sleep 40%, inverted stress 30%, energy 30%."""
    raw = (
        (sleep / SLEEP_TARGET_HOURS) * 40
        + ((SCALE_MAX - stress) / SCALE_MAX) * 30
        + (energy / SCALE_MAX) * 30
    )
    return _finalise(raw, clamp=clamp)


def score_check_in(record: CheckInRecord, *, clamp: bool = True) -> CategoryScore:
    """Compute all category scores for a record; nothing is cached."""
    nutrition = record.nutrition
    training = record.training
    recovery = record.recovery
    return CategoryScore(
        nutrition=nutrition_score(
            nutrition.calories,
            nutrition.protein,
            nutrition.carbs,
            nutrition.fats,
            clamp=clamp,
        ),
        training=training_score(training.sessions, training.intensity, clamp=clamp),
        recovery=recovery_score(recovery.sleep, recovery.stress, recovery.energy, clamp=clamp),
        overall=_finalise(record.percentage_rating, clamp=clamp),
    )
