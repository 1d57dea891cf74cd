from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import ScoringOptions, get_config
from .insights import InsightSummary, generate_insights
from .models import (
    CheckInRecord,
    EmptyInputError,
    MalformedRowError,
    NutritionEntry,
    RecoveryEntry,
    TrainingEntry,
    ValidationResult,
    format_answer,
)
from .recommendations import Recommendations, generate_recommendations
from .scoring import score_check_in
from .validation import MeasurementValidator

LOGGER = logging.getLogger(__name__)

QuestionGroups = Dict[str, List[Dict[str, Any]]]


@dataclass(frozen=True)
class ImportResult:
    """Everything the dashboards need from one imported batch of check-ins."""

    check_ins: List[Dict[str, Any]]
    measurements: List[Dict[str, Any]]
    insights: InsightSummary
    recommendations: Recommendations
    custom_questions: QuestionGroups

    @property
    def issue_count(self) -> int:
        return sum(len(entry["validation"]) for entry in self.measurements)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checkIns": self.check_ins,
            "measurements": [
                {
                    **{key: value for key, value in entry.items() if key != "validation"},
                    "validation": {
                        name: result.to_dict() for name, result in entry["validation"].items()
                    },
                }
                for entry in self.measurements
            ],
            "insights": self.insights.to_dict(),
            "recommendations": self.recommendations.to_dict(),
            "customQuestions": self.custom_questions,
        }


def nutrition_answers(nutrition: NutritionEntry) -> List[Dict[str, str]]:
    return [
        {"question": "Daily Calorie Intake", "answer": format_answer(nutrition.calories)},
        {"question": "Protein Intake (g)", "answer": format_answer(nutrition.protein)},
        {"question": "Carb Intake (g)", "answer": format_answer(nutrition.carbs)},
        {"question": "Fat Intake (g)", "answer": format_answer(nutrition.fats)},
    ]


def training_answers(training: TrainingEntry) -> List[Dict[str, str]]:
    return [
        {"question": "Training Sessions", "answer": format_answer(training.sessions)},
        {"question": "Training Intensity (1-10)", "answer": format_answer(training.intensity)},
        {"question": "Progress Notes", "answer": training.progress},
    ]


def recovery_answers(recovery: RecoveryEntry) -> List[Dict[str, str]]:
    return [
        {"question": "Sleep Duration (hours)", "answer": format_answer(recovery.sleep)},
        {"question": "Stress Level (1-10)", "answer": format_answer(recovery.stress)},
        {"question": "Energy Level (1-10)", "answer": format_answer(recovery.energy)},
    ]


def parse_records(rows: Sequence[Any], *, strict: bool = False) -> List[CheckInRecord]:
    """Type every raw row; the first malformed row aborts the whole batch."""
    records: List[CheckInRecord] = []
    for index, row in enumerate(rows):
        try:
            records.append(CheckInRecord.from_mapping(row, strict=strict, index=index))
        except MalformedRowError:
            LOGGER.warning("Rejecting import batch of %s rows: row %s is malformed", len(rows), index)
            raise
    return records


def group_custom_questions(records: Sequence[CheckInRecord]) -> QuestionGroups:
    """
    Merge custom questions across check-ins by category.

    Identical question text (exact match) collapses into one entry whose answers
    follow check-in order; distinct questions keep their first-seen order.
    """
    grouped: QuestionGroups = {}
    lookup: Dict[tuple[str, str], Dict[str, Any]] = {}
    for record in records:
        for item in record.custom_questions:
            key = (item.category, item.question)
            entry = lookup.get(key)
            if entry is None:
                entry = {"question": item.question, "answers": []}
                lookup[key] = entry
                grouped.setdefault(item.category, []).append(entry)
            entry["answers"].append(item.answer)
    return grouped


def _measurement_series(record: CheckInRecord) -> Dict[str, float]:
    """Reported measurements only; blanks that defaulted to 0 are left out."""
    series = {"weight": record.weight, "bodyFat": record.body_fat}
    series.update(record.measurements)
    return {name: value for name, value in series.items() if name not in record.defaulted}


def validate_measurements(
    records: Sequence[CheckInRecord],
    validator: MeasurementValidator,
) -> List[Dict[str, ValidationResult]]:
    """
    Check each record's measurements against the previous check-in by date.

    Returns one mapping per record, in input order, holding only the
    measurements that produced a warning or an error. Blank measurements are
    neither checked nor used as the baseline for later check-ins.
    """
    order = sorted(range(len(records)), key=lambda position: records[position].date)
    issues: List[Dict[str, ValidationResult]] = [{} for _ in records]
    previous: Dict[str, float] = {}
    for position in order:
        current = _measurement_series(records[position])
        for name, value in current.items():
            result = validator.validate(name, value, previous.get(name))
            if not result.is_clean:
                issues[position][name] = result
                LOGGER.debug(
                    "%s on %s: %s",
                    name,
                    records[position].date.isoformat(),
                    result.error or result.warning,
                )
        previous.update(current)
    return issues


def process_check_ins(
    rows: Sequence[Any],
    *,
    options: Optional[ScoringOptions] = None,
    validator: Optional[MeasurementValidator] = None,
) -> ImportResult:
    """
    Score, validate and summarise a batch of raw check-in rows.

    `options` and `validator` default to the loaded configuration. Any malformed
    row raises `MalformedRowError` and nothing is returned for the batch.
    """
    if not rows:
        raise EmptyInputError("No check-in rows to import.")

    config = get_config()
    options = options or config.scoring
    validator = validator or MeasurementValidator(config.measurement_rules)

    LOGGER.info(
        "Processing %s check-in rows (strict=%s, clamp_lower=%s)",
        len(rows),
        options.strict,
        options.clamp_lower,
    )
    records = parse_records(rows, strict=options.strict)

    check_ins = [
        {
            "date": record.date.isoformat(),
            "week": record.week,
            "scores": score_check_in(record, clamp=options.clamp_lower).to_dict(),
            "categoryAnswers": {
                "nutrition": nutrition_answers(record.nutrition),
                "training": training_answers(record.training),
                "recovery": recovery_answers(record.recovery),
            },
            "customQuestions": [question.to_dict() for question in record.custom_questions],
        }
        for record in records
    ]

    issues = validate_measurements(records, validator)
    measurements = [
        {
            "date": record.date.isoformat(),
            "week": record.week,
            "weight": record.weight,
            "bodyFat": record.body_fat,
            "measurements": [
                {"type": name, "value": value} for name, value in record.measurements.items()
            ],
            "validation": record_issues,
        }
        for record, record_issues in zip(records, issues)
    ]

    insights = generate_insights(records, rules=validator.rules)
    recommendations = generate_recommendations(insights=insights)

    return ImportResult(
        check_ins=check_ins,
        measurements=measurements,
        insights=insights,
        recommendations=recommendations,
        custom_questions=group_custom_questions(records),
    )


def render_summary_table(result: ImportResult) -> str:
    """Render a fixed-width table with one line per imported check-in."""
    headers = ("date", "week", "weight", "body_fat", "nutrition", "training", "recovery", "overall", "issues")
    rows = []
    for check_in, entry in zip(result.check_ins, result.measurements):
        scores = check_in["scores"]
        rows.append(
            {
                "date": check_in["date"],
                "week": str(check_in["week"]),
                "weight": f"{entry['weight']:.1f}",
                "body_fat": f"{entry['bodyFat']:.1f}",
                "nutrition": str(scores["nutrition"]),
                "training": str(scores["training"]),
                "recovery": str(scores["recovery"]),
                "overall": str(scores["overall"]),
                "issues": ", ".join(sorted(entry["validation"])) or "",
            }
        )
    widths = {key: len(key) for key in headers}
    for row in rows:
        for key in headers:
            widths[key] = max(widths[key], len(row[key]))

    def _format_line(values: Mapping[str, str]) -> str:
        return "  ".join(values[key].rjust(widths[key]) for key in headers)

    header_line = "  ".join(key.upper().rjust(widths[key]) for key in headers)
    body = "\n".join(_format_line(row) for row in rows)
    return "\n".join(filter(None, [header_line, body]))


def generate_plots(result: ImportResult, *, output_dir: Path) -> list[Path]:
    """Write one line chart per trend metric (weight, body fat)."""

    try:
        import matplotlib

        matplotlib.use("Agg")
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via CLI
        raise RuntimeError("matplotlib is required to generate plots.") from exc

    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    labels = {"weight": ("Weight Over Time", "Weight (kg)"), "bodyFat": ("Body Fat Over Time", "Body Fat (%)")}
    paths: list[Path] = []
    for metric, series in result.insights.trends.items():
        title, ylabel = labels.get(metric, (metric, metric))
        dates = [point.date for point in series]
        values = [point.value for point in series]

        path = output_dir / f"{metric}_trend_{timestamp}.png"
        fig, ax = plt.subplots()
        ax.plot(dates, values, marker="o", linewidth=2, label=series.direction or "n/a")
        ax.set_title(title)
        ax.set_xlabel("Date")
        ax.set_ylabel(ylabel)
        ax.legend()
        fig.autofmt_xdate()
        fig.tight_layout()
        fig.savefig(path, dpi=150)
        plt.close(fig)
        paths.append(path)
    return paths
