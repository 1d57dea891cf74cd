from __future__ import annotations

import pytest

from checkin_tracker.models import MalformedRowError
from checkin_tracker.services import process_check_ins
from checkin_tracker.sheets import (
    HeaderMap,
    determine_question_category,
    normalise_sheet_date,
    rows_from_table,
)
from checkin_tracker.validation import MeasurementValidator

HEADERS = [
    "Date",
    "Week",
    "Weight",
    "Body Fat",
    "Waist",
    "Calories",
    "Protein",
    "Carbs",
    "Fats",
    "Sessions",
    "Intensity",
    "Progress",
    "Sleep",
    "Stress",
    "Energy",
    "Percentage Rating",
    "How many meals did you eat?",
    "Any gym injuries?",
    "Anything else?",
    "Upload photos & measurements are non negotiable.",
]


def _table() -> list[list[str]]:
    return [
        HEADERS,
        ["2024-05-01", "1", "80", "18", "85", "2000", "150", "200", "70", "4", "8", "Good", "7", "6", "8", "88", "3", "No", "", "x"],
        ["2024-05-08", "2", "79", "", "84", "2100", "160", "210", "65", "3", "7", "", "7.5", "5", "7", "90", "4", "Sore knee", "Thanks", ""],
        ["", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", ""],
    ]


def test_header_map_is_case_insensitive() -> None:
    header_map = HeaderMap(HEADERS)
    assert "body fat" in header_map
    assert "BODY FAT" in header_map
    assert header_map.index_of(" percentage rating ") == 15
    assert header_map.get(["a", "b"], "weight") == ""


def test_custom_questions_exclude_standard_and_boilerplate_columns() -> None:
    questions = HeaderMap(HEADERS).custom_questions()
    assert questions == ["How many meals did you eat?", "Any gym injuries?", "Anything else?"]


@pytest.mark.parametrize(
    "question, category",
    [
        ("How many meals did you eat?", "nutrition"),
        ("Any gym injuries?", "training"),
        ("Rate your sleep quality", "recovery"),
        ("Anything else?", "general"),
    ],
)
def test_determine_question_category(question, category) -> None:
    assert determine_question_category(question) == category


def test_rows_from_table_builds_nested_rows() -> None:
    rows = rows_from_table(_table())
    assert len(rows) == 2, "blank rows are skipped"
    first = rows[0]
    assert first["date"] == "2024-05-01"
    assert first["bodyFat"] == "18"
    assert first["measurements"] == {"waist": "85"}
    assert first["nutrition"]["protein"] == "150"
    assert first["training"]["progress"] == "Good"
    assert first["percentageRating"] == "88"
    assert first["customQuestions"][0] == {
        "question": "How many meals did you eat?",
        "answer": "3",
        "category": "nutrition",
    }


def test_blank_cells_are_omitted() -> None:
    second = rows_from_table(_table())[1]
    assert "bodyFat" not in second
    assert "progress" not in second["training"]


def test_rows_from_table_requires_data_rows() -> None:
    with pytest.raises(MalformedRowError, match="No data"):
        rows_from_table([HEADERS])


def test_rows_from_table_requires_date_column() -> None:
    with pytest.raises(MalformedRowError, match="Date"):
        rows_from_table([["Weight"], ["80"]])


@pytest.mark.parametrize(
    "cell, expected",
    [
        ("2024-01-15", "2024-01-15"),
        ("1/15/2024", "2024-01-15"),
        ("Jan 15 2024", "2024-01-15"),
        ("2024-01-15T08:30:00Z", "2024-01-15"),
    ],
)
def test_normalise_sheet_date_accepts_locale_formats(cell, expected) -> None:
    assert normalise_sheet_date(cell) == expected


def test_us_style_sheet_dates_import_end_to_end() -> None:
    rows = rows_from_table([["Date", "Weight"], ["1/15/2024", "80"], ["1/22/2024", "79"]])
    assert [row["date"] for row in rows] == ["2024-01-15", "2024-01-22"]

    result = process_check_ins(rows, validator=MeasurementValidator())
    assert [entry["date"] for entry in result.check_ins] == ["2024-01-15", "2024-01-22"]
    assert result.insights.progress.weight_change == -1


def test_unparseable_sheet_date_names_the_sheet_row() -> None:
    with pytest.raises(MalformedRowError, match="sheet row 3"):
        rows_from_table([["Date", "Weight"], ["2024-01-15", "80"], ["not a date", "79"]])
