"""
Shared fixtures for unit tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import FakeSearchTool

from travel_orchestrator.config import JobConfig, OrchestratorConfig
from travel_orchestrator.data.models import TripPreferences
from travel_orchestrator.orchestration.core.stage_registry import build_default_registry
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.services.cache_service import InMemoryCacheStore
from travel_orchestrator.tools.calculate import CalculateTool
from travel_orchestrator.tools.invoker import ToolInvoker


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def seoul_preferences():
    return TripPreferences.model_validate(
        {
            "destination": "Seoul",
            "comingFrom": "Tokyo",
            "startDate": "2025-06-01",
            "endDate": "2025-06-05",
            "budget": "moderate",
            "travelers": "2",
            "interests": "food, culture",
        }
    )


@pytest.fixture
def failing_genai_client():
    """Gemini client whose every call fails, forcing the local fallbacks."""
    client = MagicMock()
    client.aio = MagicMock()
    client.aio.models = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        side_effect=RuntimeError("Gemini unavailable")
    )
    return client


@pytest.fixture
def search_tool():
    return FakeSearchTool()


@pytest.fixture
def invoker(search_tool):
    return ToolInvoker([search_tool, CalculateTool()])


@pytest.fixture
def settings():
    return OrchestratorConfig(recursion_limit=150, timeout_ms=300_000, tools_enabled=True)


@pytest.fixture
def orchestrator(failing_genai_client, invoker, settings):
    return Orchestrator(
        registry=build_default_registry(client=failing_genai_client),
        invoker=invoker,
        settings=settings,
    )


@pytest.fixture
def job_config():
    return JobConfig(attempts=3, backoff_ms=2000, concurrency=1)


@pytest.fixture
def recorded_sleeps():
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    async def sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return sleep
