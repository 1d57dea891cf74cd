from __future__ import annotations

GENERAL_CATEGORY = "general"

# Spreadsheet column name -> (section, field) in the raw import row.
# A section of None means a top-level field.
STANDARD_COLUMNS: dict[str, tuple[str | None, str]] = {
    "date": (None, "date"),
    "week": (None, "week"),
    "weight": (None, "weight"),
    "body fat": (None, "bodyFat"),
    "chest": ("measurements", "chest"),
    "waist": ("measurements", "waist"),
    "hips": ("measurements", "hips"),
    "arms": ("measurements", "arms"),
    "legs": ("measurements", "legs"),
    "calories": ("nutrition", "calories"),
    "protein": ("nutrition", "protein"),
    "carbs": ("nutrition", "carbs"),
    "fats": ("nutrition", "fats"),
    "sessions": ("training", "sessions"),
    "intensity": ("training", "intensity"),
    "progress": ("training", "progress"),
    "sleep": ("recovery", "sleep"),
    "stress": ("recovery", "stress"),
    "energy": ("recovery", "energy"),
    "percentage rating": (None, "percentageRating"),
}

# Form boilerplate columns that are neither data nor questions.
IGNORED_COLUMNS: frozenset[str] = frozenset(
    {"upload photos & measurements are non negotiable."}
)

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "nutrition": ("nutrition", "food", "diet", "meal"),
    "training": ("training", "workout", "exercise", "gym"),
    "recovery": ("recovery", "sleep", "stress", "energy"),
}
