"""Tests for the pipeline stages."""

import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from travel_orchestrator.agents.city_selector import CitySelectorStage
from travel_orchestrator.agents.local_expert import LocalExpertStage
from travel_orchestrator.agents.travel_concierge import (
    TravelConciergeStage,
    total_budget,
)
from travel_orchestrator.data.models import (
    CityAnalysis,
    LocalExpertAnalysis,
    TravelLogistics,
    TripPreferences,
)
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId

TODAY = date(2025, 5, 1)


def preferences(**overrides):
    data = {
        "destination": "Seoul",
        "startDate": "2025-06-01",
        "endDate": "2025-06-04",
        "budget": "moderate",
        "travelers": "2",
        "interests": "food",
    }
    data.update(overrides)
    return TripPreferences.model_validate(data)


def answering_client(payload: dict):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=MagicMock(text=json.dumps(payload))
    )
    return client


async def test_city_selector_uses_model_answer():
    client = answering_client(
        {
            "selected_city": "Busan",
            "alternatives": [
                {
                    "city": "Busan",
                    "rating": 4.6,
                    "highlights": ["Haeundae"],
                    "budget": "$150/day",
                    "best_for": "Beaches",
                    "reasoning": "Coastal food culture",
                }
            ],
            "search_query": "busan seafood",
            "confidence": 0.9,
        }
    )
    stage = CitySelectorStage(client=client, today=TODAY)

    result = await stage.run(ExecutionState.initial(preferences()))

    assert isinstance(result.output, CityAnalysis)
    assert result.output.selected_city == "Busan"
    assert result.output.calculations[0]["daily_budget"] == 180
    assert result.tool_requests[0].params == {"query": "busan seafood"}
    kwargs = client.aio.models.generate_content.await_args.kwargs
    assert kwargs["config"].response_mime_type == "application/json"


async def test_city_selector_falls_back(failing_genai_client):
    stage = CitySelectorStage(client=failing_genai_client, today=TODAY)

    result = await stage.run(ExecutionState.initial(preferences(budget="luxury")))

    analysis = result.output
    assert analysis.selected_city == "Seoul - Top Choice"
    assert len(analysis.alternatives) == 3
    assert analysis.alternatives[0].budget == "$300/day"
    assert analysis.confidence == 0.85
    assert analysis.search_query == "best Seoul destinations luxury budget food 2025"
    assert not result.is_complete


@pytest.mark.parametrize(
    ("destination", "expected"),
    [("Western Europe", "Barcelona, Spain"), ("Southeast Asia", "Bangkok, Thailand")],
)
async def test_city_selector_regional_fallbacks(failing_genai_client, destination, expected):
    stage = CitySelectorStage(client=failing_genai_client, today=TODAY)

    result = await stage.run(ExecutionState.initial(preferences(destination=destination)))

    assert result.output.selected_city == expected


async def test_invalid_model_json_falls_back():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text="not json"))
    stage = CitySelectorStage(client=client, today=TODAY)

    result = await stage.run(ExecutionState.initial(preferences()))

    assert result.output.selected_city == "Seoul - Top Choice"


async def test_local_expert_fallback_for_known_city(failing_genai_client):
    state = ExecutionState.initial(preferences()).model_copy(
        update={
            "stage_outputs": {
                StageId.SELECTION: CityAnalysis(selected_city="Barcelona, Spain")
            }
        }
    )
    stage = LocalExpertStage(client=failing_genai_client, today=TODAY)

    result = await stage.run(state)

    assert isinstance(result.output, LocalExpertAnalysis)
    assert result.output.insights[0].name == "Bunkers del Carmel"
    assert result.output.confidence == 0.88
    assert len(result.tool_requests) == len(result.output.search_queries) == 6
    assert all(request.tool == "search" for request in result.tool_requests)


async def test_local_expert_generic_insights(failing_genai_client):
    stage = LocalExpertStage(client=failing_genai_client, today=TODAY)

    result = await stage.run(ExecutionState.initial(preferences()))

    assert len(result.output.insights) == 3
    assert "Seoul" in result.summary


async def test_concierge_builds_full_itinerary(failing_genai_client):
    prefs = preferences(travelers="5+", budget="budget", comingFrom="Osaka")
    state = ExecutionState.initial(prefs).model_copy(
        update={"stage_outputs": {StageId.SELECTION: CityAnalysis(selected_city="Busan")}}
    )
    stage = TravelConciergeStage(client=failing_genai_client)

    result = await stage.run(state)

    logistics = result.output
    assert isinstance(logistics, TravelLogistics)
    assert result.is_complete
    assert len(logistics.schedule) == prefs.days == 3
    assert [day.date for day in logistics.schedule] == [
        "2025-06-01",
        "2025-06-02",
        "2025-06-03",
    ]
    assert len({day.title for day in logistics.schedule}) == 3
    assert all(len(day.activities) == 4 for day in logistics.schedule)
    assert logistics.total_budget.amount == "$525"
    assert logistics.calculations[1]["group_multiplier"] == 1.2
    assert logistics.booking_info["flights"][0]["departure"] == "Osaka"
    assert len(logistics.booking_info["activities"]) == 3
    request = result.tool_requests[0]
    assert request.tool == "calculate"
    assert request.params == {"expression": "175 * 3", "kind": "currency"}


def test_total_budget_split():
    budget = total_budget(250, 4)

    assert budget.amount == "$1000"
    assert budget.breakdown.accommodation == "$350 (35%)"
    assert budget.breakdown.misc == "$50 (5%)"
