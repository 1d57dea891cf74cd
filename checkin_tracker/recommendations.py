from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .insights import InsightSummary, generate_insights
from .models import CheckInRecord, EmptyInputError
from .scoring import round_half_up


@dataclass(frozen=True)
class Recommendations:
    nutrition: List[str] = field(default_factory=list)
    training: List[str] = field(default_factory=list)
    recovery: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "nutrition": list(self.nutrition),
            "training": list(self.training),
            "recovery": list(self.recovery),
        }


def generate_recommendations(
    records: Optional[Sequence[CheckInRecord]] = None,
    *,
    insights: Optional[InsightSummary] = None,
) -> Recommendations:
    """
    Turn average calories, training intensity and sleep into coaching tips.

    Pass `insights` when they are already computed to reuse their averages;
    otherwise they are derived from `records`.
    """
    if insights is None:
        if not records:
            raise EmptyInputError("At least one check-in is required to generate recommendations.")
        insights = generate_insights(records)

    avg_calories = insights.pattern("nutrition", "averageCalories")
    avg_intensity = insights.pattern("training", "averageIntensity")
    avg_sleep = insights.pattern("recovery", "averageSleep")

    return Recommendations(
        nutrition=[
            f"Your average daily calories are {round_half_up(avg_calories)}. "
            "Consider adjusting based on your goals.",
            "Focus on maintaining consistent protein intake across all meals.",
        ],
        training=[
            f"Your average training intensity is {avg_intensity:.1f}/10. "
            "Consider increasing intensity gradually.",
            "Try to maintain consistent training frequency.",
        ],
        recovery=[
            f"Your average sleep is {avg_sleep:.1f} hours. "
            "Aim for 7-9 hours for optimal recovery.",
            "Monitor stress levels and implement recovery strategies.",
        ],
    )
