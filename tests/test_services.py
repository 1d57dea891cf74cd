from __future__ import annotations

import json

import pytest

from checkin_tracker.config import MeasurementRule, ScoringOptions
from checkin_tracker.models import EmptyInputError, MalformedRowError
from checkin_tracker.services import (
    generate_plots,
    group_custom_questions,
    parse_records,
    process_check_ins,
    render_summary_table,
)
from checkin_tracker.validation import MeasurementValidator


def _row(day: str, weight: float | str, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "date": day,
        "week": 1,
        "weight": weight,
        "bodyFat": 18.0,
        "measurements": {"waist": 85.0, "chest": 100.0},
        "nutrition": {"calories": 2000, "protein": 150, "carbs": 200, "fats": 70},
        "training": {"sessions": 4, "intensity": 8, "progress": "Steady"},
        "recovery": {"sleep": 7, "stress": 6, "energy": 8},
        "customQuestions": [],
        "percentageRating": 85,
    }
    row.update(overrides)
    return row


def test_end_to_end_weight_change() -> None:
    result = process_check_ins([_row("2024-01-01", 80), _row("2024-01-08", 78, week=2)])
    assert result.insights.progress.weight_change == -2
    assert len(result.check_ins) == 2
    assert len(result.measurements) == 2


def test_check_in_entries_carry_scores_and_answers() -> None:
    result = process_check_ins([_row("2024-01-01", 80)])
    entry = result.check_ins[0]
    assert entry["scores"] == {"nutrition": 87, "training": 90, "recovery": 71, "overall": 85}
    assert entry["categoryAnswers"]["nutrition"][0] == {
        "question": "Daily Calorie Intake",
        "answer": "2000",
    }
    assert entry["categoryAnswers"]["training"][2] == {"question": "Progress Notes", "answer": "Steady"}
    assert len(entry["categoryAnswers"]["recovery"]) == 3


def test_measurements_projection_flattens_pairs() -> None:
    result = process_check_ins([_row("2024-01-01", 80)])
    entry = result.measurements[0]
    assert entry["measurements"] == [
        {"type": "waist", "value": 85.0},
        {"type": "chest", "value": 100.0},
    ]
    assert entry["validation"] == {}


def test_large_change_flags_warning_against_previous_date() -> None:
    rows = [_row("2024-01-08", 100), _row("2024-01-01", 90)]
    result = process_check_ins(rows)
    later = result.measurements[0]["validation"]
    assert "weight" in later
    assert later["weight"].is_valid
    assert "11.1%" in later["weight"].warning
    assert result.measurements[1]["validation"] == {}
    assert result.issue_count == 1


def test_out_of_range_measurement_is_reported_not_raised() -> None:
    result = process_check_ins([_row("2024-01-01", 80, measurements={"waist": 200})])
    issue = result.measurements[0]["validation"]["waist"]
    assert not issue.is_valid
    assert "Maximum waist" in issue.error


def test_blank_weight_is_not_validated_or_used_as_baseline() -> None:
    rows = [
        _row("2024-01-01", 80),
        _row("2024-01-08", "", week=2),
        _row("2024-01-15", 100, week=3),
    ]
    result = process_check_ins(rows)
    assert result.measurements[1]["validation"] == {}
    later = result.measurements[2]["validation"]["weight"]
    assert later.is_valid
    assert "25.0%" in later.warning
    assert result.issue_count == 1


@pytest.mark.parametrize("clamp_lower", [True, False])
def test_non_finite_values_reject_the_batch(clamp_lower) -> None:
    rows = [
        _row("2024-01-01", 80),
        _row("2024-01-08", 79, recovery={"sleep": "-inf", "stress": 5, "energy": 5}),
    ]
    with pytest.raises(MalformedRowError, match="row 1: recovery.sleep must be a finite number"):
        process_check_ins(rows, options=ScoringOptions(clamp_lower=clamp_lower))


def test_custom_questions_merge_by_category_and_text() -> None:
    rows = [
        _row(
            "2024-01-01",
            80,
            customQuestions=[
                {"question": "How many meals?", "answer": "3", "category": "nutrition"},
                {"question": "Any pain?", "answer": "No", "category": "general"},
            ],
        ),
        _row(
            "2024-01-08",
            79,
            customQuestions=[
                {"question": "How many meals?", "answer": "4", "category": "nutrition"},
                {"question": "Water intake?", "answer": "3L", "category": "nutrition"},
            ],
        ),
    ]
    grouped = process_check_ins(rows).custom_questions
    assert grouped["nutrition"] == [
        {"question": "How many meals?", "answers": ["3", "4"]},
        {"question": "Water intake?", "answers": ["3L"]},
    ]
    assert grouped["general"] == [{"question": "Any pain?", "answers": ["No"]}]


def test_question_merge_is_exact_match() -> None:
    records = parse_records(
        [
            _row("2024-01-01", 80, customQuestions=[{"question": "Meals?", "answer": "3", "category": "nutrition"}]),
            _row("2024-01-08", 80, customQuestions=[{"question": "meals?", "answer": "4", "category": "nutrition"}]),
        ]
    )
    assert len(group_custom_questions(records)["nutrition"]) == 2


def test_malformed_row_fails_whole_batch() -> None:
    rows = [_row("2024-01-01", 80), {"date": "2024-01-08", "weight": 79}]
    with pytest.raises(MalformedRowError, match="row 1"):
        process_check_ins(rows)


def test_empty_batch_is_rejected() -> None:
    with pytest.raises(EmptyInputError):
        process_check_ins([])


def test_strict_option_rejects_missing_numbers() -> None:
    row = _row("2024-01-01", 80)
    row["nutrition"] = {"calories": 2000, "protein": 150, "carbs": 200}
    assert process_check_ins([row]).check_ins[0]["scores"]["nutrition"] == 57
    with pytest.raises(MalformedRowError, match="nutrition.fats"):
        process_check_ins([row], options=ScoringOptions(strict=True))


def test_unclamped_option_allows_negative_scores() -> None:
    row = _row("2024-01-01", 80, recovery={"sleep": 0, "stress": 20, "energy": 0})
    assert process_check_ins([row]).check_ins[0]["scores"]["recovery"] == 0
    unclamped = process_check_ins([row], options=ScoringOptions(clamp_lower=False))
    assert unclamped.check_ins[0]["scores"]["recovery"] == -30


def test_injected_validator_rules_are_used() -> None:
    validator = MeasurementValidator({"weight": MeasurementRule(minimum=85, maximum=120, warning_threshold=5)})
    result = process_check_ins([_row("2024-01-01", 80)], validator=validator)
    assert "weight" in result.measurements[0]["validation"]


def test_to_dict_is_json_serialisable() -> None:
    payload = process_check_ins([_row("2024-01-01", 90), _row("2024-01-08", 100)]).to_dict()
    text = json.dumps(payload)
    decoded = json.loads(text)
    assert set(decoded) == {"checkIns", "measurements", "insights", "recommendations", "customQuestions"}
    assert decoded["measurements"][1]["validation"]["weight"]["isValid"] is True
    assert decoded["insights"]["progress"]["weightChange"] == 10


def test_render_summary_table_lists_each_check_in() -> None:
    table = render_summary_table(process_check_ins([_row("2024-01-01", 80), _row("2024-01-08", 79)]))
    lines = table.splitlines()
    assert "NUTRITION" in lines[0]
    assert len(lines) == 3
    assert "2024-01-08" in lines[2]


def test_generate_plots_writes_trend_charts(tmp_path) -> None:
    result = process_check_ins([_row("2024-01-01", 80), _row("2024-01-08", 79)])
    paths = generate_plots(result, output_dir=tmp_path / "plots")
    assert len(paths) == 2
    assert all(path.exists() for path in paths)
    assert any("weight" in path.name for path in paths)
