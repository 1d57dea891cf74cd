from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .config import MeasurementRule
from .models import CheckInRecord, EmptyInputError
from .validation import MeasurementValidator, Trend

# Output key -> dataframe column for each pattern category.
PATTERN_FIELDS: dict[str, dict[str, str]] = {
    "nutrition": {
        "averageCalories": "calories",
        "averageProtein": "protein",
        "averageCarbs": "carbs",
        "averageFats": "fats",
    },
    "training": {
        "averageSessions": "sessions",
        "averageIntensity": "intensity",
    },
    "recovery": {
        "averageSleep": "sleep",
        "averageStress": "stress",
        "averageEnergy": "energy",
    },
}

# Trend name -> dataframe column.
TREND_METRICS: dict[str, str] = {"weight": "weight", "bodyFat": "body_fat"}


@dataclass(frozen=True)
class TrendPoint:
    date: date
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "value": self.value}


@dataclass(frozen=True)
class TrendSeries:
    """Date-ordered values for one metric; iterate it as often as needed."""

    metric: str
    points: Tuple[TrendPoint, ...]
    direction: Optional[Trend] = None

    def __iter__(self) -> Iterator[TrendPoint]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def to_list(self) -> list[Dict[str, Any]]:
        return [point.to_dict() for point in self.points]


@dataclass(frozen=True)
class ProgressSummary:
    start_date: date
    end_date: date
    weight_change: float
    body_fat_change: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "weightChange": self.weight_change,
            "bodyFatChange": self.body_fat_change,
        }


@dataclass(frozen=True)
class InsightSummary:
    progress: ProgressSummary
    trends: Dict[str, TrendSeries]
    patterns: Dict[str, Dict[str, float]]

    def pattern(self, category: str, key: str) -> float:
        return self.patterns[category][key]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "progress": self.progress.to_dict(),
            "trends": {name: series.to_list() for name, series in self.trends.items()},
            "trendDirections": {name: series.direction for name, series in self.trends.items()},
            "patterns": {category: dict(values) for category, values in self.patterns.items()},
        }


def records_to_dataframe(records: Sequence[CheckInRecord]) -> pd.DataFrame:
    """Flatten records into one row each, stable-sorted by date."""
    rows: list[dict[str, object]] = []
    for record in records:
        rows.append(
            {
                "date": record.date,
                "week": record.week,
                "weight": record.weight,
                "body_fat": record.body_fat,
                "calories": record.nutrition.calories,
                "protein": record.nutrition.protein,
                "carbs": record.nutrition.carbs,
                "fats": record.nutrition.fats,
                "sessions": record.training.sessions,
                "intensity": record.training.intensity,
                "sleep": record.recovery.sleep,
                "stress": record.recovery.stress,
                "energy": record.recovery.energy,
                "percentage_rating": record.percentage_rating,
            }
        )
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    # mergesort is the stable option; ties keep their input order.
    df.sort_values("date", kind="mergesort", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def generate_insights(
    records: Sequence[CheckInRecord],
    *,
    rules: Mapping[str, MeasurementRule] | None = None,
) -> InsightSummary:
    """
    Summarise a client's check-ins: start/end deltas, per-date series, averages.

    The input sequence is left untouched; the result is rebuilt from scratch on
    every call.
    """
    if not records:
        raise EmptyInputError("At least one check-in is required to generate insights.")

    df = records_to_dataframe(records)
    first = df.iloc[0]
    last = df.iloc[-1]

    progress = ProgressSummary(
        start_date=first["date"],
        end_date=last["date"],
        weight_change=float(last["weight"] - first["weight"]),
        body_fat_change=float(last["body_fat"] - first["body_fat"]),
    )

    validator = MeasurementValidator(rules)
    trends: Dict[str, TrendSeries] = {}
    for metric, column in TREND_METRICS.items():
        points = tuple(
            TrendPoint(date=day, value=float(value))
            for day, value in zip(df["date"], df[column])
        )
        history = [(point.date, point.value) for point in points]
        trends[metric] = TrendSeries(
            metric=metric,
            points=points,
            direction=validator.detect_trend(metric, history),
        )

    patterns = {
        category: {key: float(df[column].mean()) for key, column in fields.items()}
        for category, fields in PATTERN_FIELDS.items()
    }

    return InsightSummary(progress=progress, trends=trends, patterns=patterns)
