from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from .constants import GENERAL_CATEGORY

__all__ = [
    "parse_iso_date",
    "coerce_number",
    "format_answer",
    "CheckInError",
    "ValidationError",
    "EmptyInputError",
    "MalformedRowError",
    "NutritionEntry",
    "TrainingEntry",
    "RecoveryEntry",
    "CustomQuestion",
    "CheckInRecord",
    "CategoryScore",
    "ValidationResult",
]


class CheckInError(ValueError):
    """Base class for everything the check-in pipeline raises on bad input."""


class ValidationError(CheckInError):
    """Raised when user-supplied data cannot be normalised safely."""


class EmptyInputError(CheckInError):
    """Raised when an aggregation is asked to summarise zero check-ins."""


class MalformedRowError(CheckInError):
    """Raised when a raw row lacks a structure the import depends on."""


def parse_iso_date(value: Any, *, field: str = "date") -> date:
    """
    Parse user-supplied ISO-8601 dates.

    Accepts `datetime.date`, `datetime.datetime`, or strings. Raises `ValidationError`
    with a friendlier message if the payload cannot be parsed.
    """
    if isinstance(value, date):
        return value if not isinstance(value, datetime) else value.date()

    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be provided as YYYY-MM-DD text; received {value!r}."
        )

    candidate = value.strip()
    if not candidate:
        raise ValidationError(f"{field} cannot be empty.")

    try:
        parsed = datetime.fromisoformat(candidate.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a valid ISO date (YYYY-MM-DD); received {candidate!r}."
        ) from exc

    return parsed.date()


def coerce_number(
    value: Any,
    *,
    field: str = "value",
    minimum: float | None = None,
    maximum: float | None = None,
    allow_empty: bool = False,
) -> float:
    """
    Convert arbitrary input into a float with guardrails.

    Empty input (None or blank text) becomes 0.0 when `allow_empty` is set and
    raises otherwise. The `minimum` and `maximum` bounds are inclusive.
    """
    if value is None:
        if allow_empty:
            return 0.0
        raise ValidationError(f"{field} is required.")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            if allow_empty:
                return 0.0
            raise ValidationError(f"{field} is required.")
        try:
            number = float(stripped)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a number; received {value!r}.") from exc
    else:
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number; received {value!r}.")

    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}; received {number}.")

    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be <= {maximum}; received {number}.")

    return number


def format_answer(value: Any) -> str:
    """Render a numeric answer without a trailing `.0` for whole numbers."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)


def _nested(raw: Mapping[str, Any], key: str, *, index: int | None) -> Mapping[str, Any]:
    section = raw.get(key)
    if not isinstance(section, Mapping):
        raise MalformedRowError(f"{_where(index)}missing '{key}' section.")
    return section


def _number(
    raw: Mapping[str, Any],
    key: str,
    *,
    strict: bool,
    index: int | None,
    label: str | None = None,
) -> float:
    name = label or key
    try:
        return coerce_number(raw.get(key), field=name, allow_empty=not strict)
    except ValidationError as exc:
        raise MalformedRowError(f"{_where(index)}{exc}") from exc


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _where(index: int | None) -> str:
    return f"row {index}: " if index is not None else ""


@dataclass
class NutritionEntry:
    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fats: float = 0.0

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, strict: bool = False, index: int | None = None
    ) -> "NutritionEntry":
        return cls(
            **{
                key: _number(raw, key, strict=strict, index=index, label=f"nutrition.{key}")
                for key in ("calories", "protein", "carbs", "fats")
            }
        )


@dataclass
class TrainingEntry:
    sessions: float = 0.0
    intensity: float = 0.0
    progress: str = ""

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, strict: bool = False, index: int | None = None
    ) -> "TrainingEntry":
        progress = raw.get("progress")
        return cls(
            sessions=_number(raw, "sessions", strict=strict, index=index, label="training.sessions"),
            intensity=_number(raw, "intensity", strict=strict, index=index, label="training.intensity"),
            progress=str(progress).strip() if progress is not None else "",
        )


@dataclass
class RecoveryEntry:
    sleep: float = 0.0
    stress: float = 0.0
    energy: float = 0.0

    @classmethod
    def from_mapping(
        cls, raw: Mapping[str, Any], *, strict: bool = False, index: int | None = None
    ) -> "RecoveryEntry":
        return cls(
            **{
                key: _number(raw, key, strict=strict, index=index, label=f"recovery.{key}")
                for key in ("sleep", "stress", "energy")
            }
        )


@dataclass
class CustomQuestion:
    question: str
    answer: str
    category: str = GENERAL_CATEGORY

    def to_dict(self) -> Dict[str, str]:
        return {"question": self.question, "answer": self.answer, "category": self.category}


@dataclass
class CheckInRecord:
    """One check-in submission for one client on one date."""

    date: date
    week: int
    weight: float
    body_fat: float
    nutrition: NutritionEntry
    training: TrainingEntry
    recovery: RecoveryEntry
    measurements: Dict[str, float] = field(default_factory=dict)
    custom_questions: List[CustomQuestion] = field(default_factory=list)
    percentage_rating: float = 0.0
    # Measurement names that were blank in the raw row and defaulted to 0.
    defaulted: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_mapping(
        cls,
        raw: Any,
        *,
        strict: bool = False,
        index: int | None = None,
    ) -> "CheckInRecord":
        """
        Build a record from a raw import row (camelCase keys).

        Missing nested sections and unparseable values always raise
        `MalformedRowError`. Missing numbers default to 0 unless `strict` is set.
        Defaulted body measurements are listed in `defaulted`.
        """
        if not isinstance(raw, Mapping):
            raise MalformedRowError(f"{_where(index)}expected an object; received {type(raw).__name__}.")

        try:
            record_date = parse_iso_date(raw.get("date"), field="date")
        except ValidationError as exc:
            raise MalformedRowError(f"{_where(index)}{exc}") from exc

        nutrition = NutritionEntry.from_mapping(_nested(raw, "nutrition", index=index), strict=strict, index=index)
        training = TrainingEntry.from_mapping(_nested(raw, "training", index=index), strict=strict, index=index)
        recovery = RecoveryEntry.from_mapping(_nested(raw, "recovery", index=index), strict=strict, index=index)

        measurements_raw = raw.get("measurements") or {}
        if not isinstance(measurements_raw, Mapping):
            raise MalformedRowError(f"{_where(index)}'measurements' must be an object.")
        measurements = {
            str(name): _number(measurements_raw, name, strict=strict, index=index, label=f"measurements.{name}")
            for name in measurements_raw
        }
        defaulted = frozenset(
            name
            for name, value in [
                ("weight", raw.get("weight")),
                ("bodyFat", raw.get("bodyFat")),
                *((str(key), item) for key, item in measurements_raw.items()),
            ]
            if _is_blank(value)
        )

        questions_raw = raw.get("customQuestions") or []
        if not isinstance(questions_raw, (list, tuple)):
            raise MalformedRowError(f"{_where(index)}'customQuestions' must be a list.")
        questions: List[CustomQuestion] = []
        for item in questions_raw:
            if not isinstance(item, Mapping) or not str(item.get("question") or "").strip():
                raise MalformedRowError(f"{_where(index)}custom question entries need a 'question'.")
            answer = item.get("answer")
            questions.append(
                CustomQuestion(
                    question=str(item["question"]),
                    answer=format_answer(answer),
                    category=str(item.get("category") or GENERAL_CATEGORY),
                )
            )

        return cls(
            date=record_date,
            week=int(_number(raw, "week", strict=strict, index=index)),
            weight=_number(raw, "weight", strict=strict, index=index),
            body_fat=_number(raw, "bodyFat", strict=strict, index=index),
            nutrition=nutrition,
            training=training,
            recovery=recovery,
            measurements=measurements,
            custom_questions=questions,
            percentage_rating=_number(raw, "percentageRating", strict=strict, index=index),
            defaulted=defaulted,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise back into the camelCase import shape."""
        return {
            "date": self.date.isoformat(),
            "week": self.week,
            "weight": self.weight,
            "bodyFat": self.body_fat,
            "measurements": dict(self.measurements),
            "nutrition": {
                "calories": self.nutrition.calories,
                "protein": self.nutrition.protein,
                "carbs": self.nutrition.carbs,
                "fats": self.nutrition.fats,
            },
            "training": {
                "sessions": self.training.sessions,
                "intensity": self.training.intensity,
                "progress": self.training.progress,
            },
            "recovery": {
                "sleep": self.recovery.sleep,
                "stress": self.recovery.stress,
                "energy": self.recovery.energy,
            },
            "customQuestions": [question.to_dict() for question in self.custom_questions],
            "percentageRating": self.percentage_rating,
        }


@dataclass(frozen=True)
class CategoryScore:
    nutrition: int
    training: int
    recovery: int
    overall: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "nutrition": self.nutrition,
            "training": self.training,
            "recovery": self.recovery,
            "overall": self.overall,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a single measurement."""

    is_valid: bool
    warning: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return self.is_valid and self.warning is None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"isValid": self.is_valid}
        if self.warning:
            payload["warning"] = self.warning
        if self.error:
            payload["error"] = self.error
        return payload
