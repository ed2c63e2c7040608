"""
Travel concierge scheduling stage.

Turns the selected city and local insights into a day-by-day schedule with a
budget split, booking checklist and practical logistics. This is the final
stage: its result completes the run.
"""

import json
from datetime import date, timedelta
from typing import Any

from google import genai

from travel_orchestrator.agents.base import BaseStage, StageConfig
from travel_orchestrator.data.models import (
    Activity,
    BudgetBreakdown,
    CityAnalysis,
    DaySchedule,
    EmergencyContacts,
    ItineraryDraft,
    LocalExpertAnalysis,
    StageResult,
    ToolRequest,
    TotalBudget,
    TravelLogistics,
    TripLogistics,
    TripPreferences,
    budget_multiplier,
)
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId

INSTRUCTIONS = (
    "You are a Travel Concierge agent. Build a diverse day-by-day plan: every "
    "day has a unique theme and different neighborhoods, with specific named "
    "places, realistic timing, logical routing and practical tips. Include a "
    "total budget with a category breakdown and packing, document and "
    "transportation logistics."
)

BASE_DAILY_BUDGET = 250
# Share of the daily budget per category
BUDGET_SPLIT = {
    "accommodation": 0.35,
    "food": 0.30,
    "activities": 0.25,
    "transport": 0.10,
    "misc": 0.05,
}

_THEMES = [
    ("Historic {city} Discovery", "History & Culture", ["Old Town", "Historic District"]),
    ("{city} Food & Market Adventure", "Culinary Experience", ["Market District", "Food Quarter"]),
    ("Art & Museums in {city}", "Art & Culture", ["Museum District", "Arts Quarter"]),
    ("Local Life in {city}", "Local Experience", ["Residential Areas", "Local Markets"]),
    ("Nature & Views around {city}", "Nature & Relaxation", ["Parks", "Scenic Areas"]),
]


def daily_budget_for(preferences: TripPreferences) -> int:
    return round(BASE_DAILY_BUDGET * budget_multiplier(preferences.budget))


def build_schedule(city: str, start: date, days: int, daily_budget: int) -> list[DaySchedule]:
    """One themed day per trip day, cycling through the theme list."""
    schedule = []
    for index in range(days):
        title, theme, neighborhoods = _THEMES[index % len(_THEMES)]
        schedule.append(
            DaySchedule(
                day=index + 1,
                date=(start + timedelta(days=index)).isoformat(),
                title=title.format(city=city),
                theme=theme,
                activities=[
                    Activity(
                        time="09:00",
                        activity=f"Morning {theme} Experience",
                        type="cultural",
                        specific_place=f"{city} Main Attraction",
                        address=f"Central {city}",
                        description=f"Explore the best of {city}'s {theme.lower()}",
                        duration="2.5 hours",
                        cost="$25",
                        booking_required=True,
                        tips=["Arrive early", "Bring camera", "Comfortable shoes recommended"],
                    ),
                    Activity(
                        time="12:30",
                        activity=f"Local {city} Lunch",
                        type="dining",
                        specific_place=f"Traditional {city} Restaurant",
                        address=neighborhoods[0],
                        description=f"Authentic local cuisine in the heart of {city}",
                        duration="1.5 hours",
                        cost="$35",
                        tips=["Try local specialties", "Ask for recommendations"],
                    ),
                    Activity(
                        time="15:00",
                        activity=f"Afternoon {city} Exploration",
                        type="sightseeing",
                        specific_place=f"{city} Hidden Gem",
                        address=neighborhoods[1],
                        description="Discover lesser-known attractions and local favorites",
                        duration="2 hours",
                        cost="$15",
                        tips=["Explore on foot", "Talk to locals", "Take your time"],
                    ),
                    Activity(
                        time="18:30",
                        activity=f"Evening {city} Experience",
                        type="leisure",
                        specific_place=f"{city} Evening Spot",
                        address="City Center",
                        description=f"End the day with a memorable {city} experience",
                        duration="2 hours",
                        cost="$30",
                        tips=["Perfect for sunset", "Bring layers", "Great photo opportunities"],
                    ),
                ],
                daily_budget=f"${daily_budget}",
                neighborhoods=list(neighborhoods),
                highlights=[
                    f"{city} Main Attraction",
                    f"Traditional {city} Restaurant",
                    f"{city} Hidden Gem",
                ],
                notes=[
                    f"Each day explores different aspects of {city}",
                    "Comfortable walking shoes essential",
                    "Try local transportation",
                    "Learn basic local phrases",
                ],
            )
        )
    return schedule


def total_budget(daily_budget: int, days: int) -> TotalBudget:
    def share(category: str) -> str:
        fraction = BUDGET_SPLIT[category]
        return f"${round(daily_budget * fraction * days)} ({round(fraction * 100)}%)"

    return TotalBudget(
        amount=f"${daily_budget * days}",
        currency="USD",
        breakdown=BudgetBreakdown(**{category: share(category) for category in BUDGET_SPLIT}),
    )


def trip_calculations(preferences: TripPreferences, days: int) -> list[dict[str, Any]]:
    group_multiplier = 1.2 if preferences.travelers == "5+" else 1.0
    daily = round(BASE_DAILY_BUDGET * budget_multiplier(preferences.budget) * group_multiplier)
    return [
        {
            "type": "daily_budget_breakdown",
            "total_daily": daily,
            "accommodation": round(daily * BUDGET_SPLIT["accommodation"]),
            "food": round(daily * BUDGET_SPLIT["food"]),
            "activities": round(daily * BUDGET_SPLIT["activities"]),
            "transport": round(daily * BUDGET_SPLIT["transport"]),
            "days": days,
            "total_trip": daily * days,
        },
        {
            "type": "group_considerations",
            "travelers": preferences.travelers,
            "group_multiplier": group_multiplier,
            "considerations": [
                "Group discounts for activities",
                "Shared accommodation costs",
                "Transportation efficiency for groups",
            ],
        },
    ]


def booking_info(
    city: str, preferences: TripPreferences, schedule: list[DaySchedule]
) -> dict[str, list[dict[str, Any]]]:
    start, end = preferences.start_date.isoformat(), preferences.end_date.isoformat()
    return {
        "hotels": [
            {
                "name": f"Premium Hotel {city}",
                "location": "City Center",
                "check_in": start,
                "check_out": end,
                "price_per_night": "$200-400",
                "booking_deadline": "2 weeks before travel",
                "amenities": ["WiFi", "Breakfast", "Concierge", "Spa"],
            }
        ],
        "flights": [
            {
                "type": "International",
                "departure": preferences.coming_from or "Home Airport",
                "arrival": f"{city} Airport",
                "date": start,
                "booking_deadline": "1 month before travel",
                "notes": "Book early for better prices",
            }
        ],
        "activities": [
            {
                "name": activity.activity,
                "place": activity.specific_place,
                "date": day.date,
                "time": activity.time,
                "cost": activity.cost,
                "booking_required": True,
            }
            for day in schedule
            for activity in day.activities
            if activity.booking_required
        ],
        "restaurants": [
            {
                "name": "Local Fine Dining",
                "cuisine": "Local Specialty",
                "price_range": "$$$",
                "reservation_required": True,
                "booking_deadline": "1 week before",
            }
        ],
    }


def trip_logistics(city: str) -> TripLogistics:
    return TripLogistics(
        transportation=[
            f"Purchase {city} local transportation pass",
            f"Download {city} transit app",
            "Keep emergency taxi numbers handy",
            f"Research {city} airport transfer options",
        ],
        packing=[
            "Comfortable walking shoes",
            "Weather-appropriate clothing for the season",
            "Portable charger and local adapters",
            "Travel insurance documents",
            f"Local currency for {city}",
        ],
        documents=[
            "Valid passport (6+ months remaining)",
            "Travel insurance policy",
            "Hotel confirmation",
            "Emergency contact information",
            f"Visa requirements for {city} (if applicable)",
        ],
        emergency=EmergencyContacts(),
    )


class TravelConciergeStage(BaseStage[ItineraryDraft]):
    """Builds the final schedule and completes the run."""

    stage_id = StageId.SCHEDULING
    response_model = ItineraryDraft

    def __init__(self, client: genai.Client | None = None):
        super().__init__(
            StageConfig.for_stage(self.stage_id, "Travel Concierge", INSTRUCTIONS), client
        )

    @staticmethod
    def selected_city(state: ExecutionState) -> str:
        analysis = state.output_for(StageId.SELECTION)
        if isinstance(analysis, CityAnalysis) and analysis.selected_city:
            return analysis.selected_city
        return state.preferences.destination

    @staticmethod
    def insights(state: ExecutionState) -> list[dict[str, Any]]:
        analysis = state.output_for(StageId.ENRICHMENT)
        if isinstance(analysis, LocalExpertAnalysis):
            return [insight.model_dump(mode="json") for insight in analysis.insights]
        return []

    def build_prompt(self, state: ExecutionState) -> str:
        preferences = state.preferences
        city = self.selected_city(state)
        return (
            f"Create a travel logistics plan for {city}.\n"
            f"Dates: {preferences.start_date.isoformat()} to "
            f"{preferences.end_date.isoformat()} ({preferences.days} days)\n"
            f"Travelers: {preferences.travelers}\n"
            f"Budget Range: {preferences.budget}\n"
            f"Local Insights: {json.dumps(self.insights(state))}\n\n"
            f"Produce exactly {preferences.days} days in the schedule."
        )

    def fallback(self, state: ExecutionState) -> ItineraryDraft:
        preferences = state.preferences
        city = self.selected_city(state)
        days = preferences.days
        daily = daily_budget_for(preferences)
        return ItineraryDraft(
            schedule=build_schedule(city, preferences.start_date, days, daily),
            total_budget=total_budget(daily, days),
            logistics=trip_logistics(city),
            confidence=0.92,
        )

    def finalize(self, state: ExecutionState, draft: ItineraryDraft) -> StageResult:
        preferences = state.preferences
        city = self.selected_city(state)
        days = preferences.days
        logistics = TravelLogistics(
            **draft.model_dump(),
            booking_info=booking_info(city, preferences, draft.schedule),
            calculations=trip_calculations(preferences, days),
        )
        return StageResult(
            output=logistics,
            summary=(
                f"Planned {len(logistics.schedule)} day(s) in {city}, "
                f"total budget {logistics.total_budget.amount}"
            ),
            tool_requests=[
                ToolRequest(
                    tool="calculate",
                    params={
                        "expression": f"{daily_budget_for(preferences)} * {days}",
                        "kind": "currency",
                    },
                    purpose="trip budget total",
                )
            ],
            is_complete=True,
        )
