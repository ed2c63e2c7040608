"""
City selection stage.

Evaluates the traveller's destination preference against budget, interests,
group size and dates, and picks a primary city with ranked alternatives.
"""

from datetime import date
from typing import Any

from google import genai

from travel_orchestrator.agents.base import BaseStage, StageConfig
from travel_orchestrator.data.models import (
    CityAnalysis,
    CityRecommendation,
    CitySelectionDraft,
    StageResult,
    ToolRequest,
    TripPreferences,
    budget_multiplier,
)
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId

INSTRUCTIONS = (
    "You are a City Selector agent specialized in destination analysis. "
    "Analyze the actual destination preference you are given and never default "
    "to a specific region. Consider cost relative to budget, alignment with "
    "interests, seasonality for the travel dates, group size logistics, safety, "
    "accessibility, and connections from the traveller's origin. "
    "Return three ranked city recommendations, an optimized web search query "
    "and an overall confidence between 0 and 1."
)

# (city, rating, highlights, base daily USD, best for, reasoning)
_EUROPE = [
    (
        "Barcelona, Spain",
        4.8,
        ["Sagrada Familia", "Park Güell", "Gothic Quarter", "Beach Access"],
        200,
        "Culture & Architecture",
        "Perfect blend of culture, architecture, and Mediterranean lifestyle "
        "with excellent value for money.",
    ),
    (
        "Prague, Czech Republic",
        4.7,
        ["Prague Castle", "Charles Bridge", "Old Town Square", "Affordable Dining"],
        150,
        "Budget-Friendly Culture",
        "Stunning medieval architecture with very affordable prices and rich "
        "cultural experiences.",
    ),
    (
        "Amsterdam, Netherlands",
        4.6,
        ["Canal Tours", "Van Gogh Museum", "Vondelpark", "Bike Culture"],
        250,
        "Art & Canals",
        "Unique canal city with world-class museums and bike-friendly culture.",
    ),
]

_ASIA = [
    (
        "Bangkok, Thailand",
        4.7,
        ["Grand Palace", "Floating Markets", "Street Food", "Temples"],
        120,
        "Culture & Food",
        "Incredible value with rich culture, amazing street food, and beautiful "
        "temples.",
    ),
    (
        "Singapore",
        4.8,
        ["Gardens by the Bay", "Marina Bay Sands", "Hawker Centers", "Clean & Safe"],
        280,
        "Modern City Experience",
        "Perfect blend of cultures with excellent infrastructure and diverse "
        "food scene.",
    ),
    (
        "Kyoto, Japan",
        4.9,
        ["Fushimi Inari", "Bamboo Grove", "Traditional Ryokans", "Temple Culture"],
        220,
        "Traditional Culture",
        "Authentic cultural experience with stunning temples and traditional "
        "accommodations.",
    ),
]


def _generic(preferences: TripPreferences) -> list[tuple]:
    destination = preferences.destination
    return [
        (
            f"{destination} - Top Choice",
            4.7,
            ["Local Attractions", "Cultural Sites", "Great Food", "Friendly Locals"],
            200,
            "Overall Experience",
            f"Excellent destination matching your preferences for "
            f"{preferences.interests} with good value for {preferences.budget} budget.",
        ),
        (
            f"{destination} - Alternative 1",
            4.5,
            ["Unique Experiences", "Local Culture", "Good Value", "Safe Travel"],
            180,
            "Budget-Conscious",
            "Great alternative with similar experiences at a more budget-friendly "
            "price point.",
        ),
        (
            f"{destination} - Alternative 2",
            4.6,
            ["Premium Experiences", "Luxury Options", "Exclusive Access", "High-End Dining"],
            250,
            "Luxury Experience",
            "Premium option with luxury accommodations and exclusive experiences.",
        ),
    ]


def budget_calculations(preferences: TripPreferences, confidence: float) -> list[dict[str, Any]]:
    """Daily budget estimate and group-size factor for the selection."""
    multiplier = budget_multiplier(preferences.budget)
    return [
        {
            "type": "budget_analysis",
            "input": preferences.budget,
            "daily_budget": round(180 * multiplier),
            "breakdown": {
                "accommodation": round(80 * multiplier),
                "food": round(60 * multiplier),
                "activities": round(40 * multiplier),
            },
            "confidence": confidence,
        },
        {
            "type": "group_size_factor",
            "travelers": preferences.travelers,
            "multiplier": 1.2 if preferences.travelers == "5+" else 1.0,
            "considerations": [
                "Group discounts",
                "Accommodation requirements",
                "Transportation needs",
            ],
        },
    ]


class CitySelectorStage(BaseStage[CitySelectionDraft]):
    """Picks the destination city."""

    stage_id = StageId.SELECTION
    response_model = CitySelectionDraft

    def __init__(self, client: genai.Client | None = None, today: date | None = None):
        super().__init__(
            StageConfig.for_stage(self.stage_id, "City Selector", INSTRUCTIONS), client
        )
        self._today = today

    def build_prompt(self, state: ExecutionState) -> str:
        trip = self.describe_trip(state.preferences)
        return (
            f"Evaluate these travel preferences:\n"
            f"Destination Preference: {trip['destination']}\n"
            f"Coming From: {trip['coming_from']}\n"
            f"Budget Range: {trip['budget']}\n"
            f"Interests: {trip['interests']}\n"
            f"Number of Travelers: {trip['travelers']}\n"
            f"Travel Dates: {trip['start_date']} to {trip['end_date']}\n\n"
            f'Analyze the actual destination preference provided: "{trip["destination"]}". '
            f"Provide detailed reasoning for each recommendation."
        )

    def fallback(self, state: ExecutionState) -> CitySelectionDraft:
        preferences = state.preferences
        multiplier = budget_multiplier(preferences.budget)
        destination = preferences.destination.lower()
        if "europe" in destination:
            candidates = _EUROPE
        elif "asia" in destination:
            candidates = _ASIA
        else:
            candidates = _generic(preferences)

        alternatives = [
            CityRecommendation(
                city=city,
                rating=rating,
                highlights=highlights,
                budget=f"${round(base * multiplier)}/day",
                best_for=best_for,
                reasoning=reasoning,
            )
            for city, rating, highlights, base, best_for, reasoning in candidates
        ]
        year = (self._today or date.today()).year
        origin = (
            f" traveling from {preferences.coming_from}" if preferences.coming_from else ""
        )
        return CitySelectionDraft(
            selected_city=alternatives[0].city,
            alternatives=alternatives,
            search_query=(
                f"best {preferences.destination} destinations {preferences.budget} "
                f"budget {preferences.interests} {year}"
            ),
            confidence=0.85,
            reasoning=(
                f"Based on your preference for {preferences.destination} with a "
                f"{preferences.budget} budget and interests in {preferences.interests}, "
                f"these destinations offer the best combination of experiences suitable "
                f"for {preferences.travelers} travelers{origin}."
            ),
        )

    def finalize(self, state: ExecutionState, draft: CitySelectionDraft) -> StageResult:
        analysis = CityAnalysis(
            **draft.model_dump(),
            calculations=budget_calculations(state.preferences, draft.confidence),
        )
        tool_requests = []
        if analysis.search_query:
            tool_requests.append(
                ToolRequest(
                    tool="search",
                    params={"query": analysis.search_query},
                    purpose="destination research",
                )
            )
        return StageResult(
            output=analysis,
            summary=(
                f"Selected {analysis.selected_city} from "
                f"{len(analysis.alternatives)} candidates "
                f"(confidence {analysis.confidence:.2f})"
            ),
            tool_requests=tool_requests,
        )
