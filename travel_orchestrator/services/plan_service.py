"""
Synchronous planning path.

Validates preferences, runs the orchestrator inline, shapes the plan payload
and caches it under the plan's location key. Caching is best-effort: a
plan is returned even when the cache store is unreachable.
"""

from typing import Any

from travel_orchestrator.data.models import (
    CityAnalysis,
    Itinerary,
    LocalExpertAnalysis,
    MessageRole,
    OrchestrationSummary,
    PlanResult,
    TravelLogistics,
    TripPreferences,
    WorkflowData,
    validate_preferences,
)
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.services import cache_keys
from travel_orchestrator.services.cache_service import CacheStore, get_cache_store
from travel_orchestrator.utils.error_handling import CacheUnavailableError
from travel_orchestrator.utils.helpers import utc_now
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)


def _typed(value: Any, model: type) -> Any:
    return value if isinstance(value, model) else None


def build_plan_result(state: ExecutionState) -> PlanResult:
    """Shape a completed run into the payload returned to callers."""
    city = _typed(state.output_for(StageId.SELECTION), CityAnalysis)
    local = _typed(state.output_for(StageId.ENRICHMENT), LocalExpertAnalysis)
    logistics = _typed(state.output_for(StageId.SCHEDULING), TravelLogistics)

    return PlanResult(
        success=True,
        orchestration=OrchestrationSummary(
            steps=state.step,
            stages_executed=state.stages_executed,
            tool_calls=len(state.tool_calls),
            execution_time_ms=state.elapsed_ms,
        ),
        recommendations=city.alternatives if city else [],
        itinerary=Itinerary(
            destination=(
                city.selected_city
                if city and city.selected_city
                else state.preferences.destination
            ),
            local_insights=local.insights if local else [],
            schedule=logistics.schedule if logistics else [],
            budget=logistics.total_budget if logistics else None,
        ),
        workflow_data=WorkflowData(
            city_analysis=city,
            local_insights=local,
            travel_logistics=logistics,
            tool_results=state.tool_calls,
        ),
    )


class PlanningService:
    """
    Inline trip planning with plan and chat caching.

    Args:
        orchestrator: Pipeline runner (defaults to the production stages)
        cache: Cache store (defaults to the process-wide store)
    """

    def __init__(
        self,
        orchestrator: Orchestrator | None = None,
        cache: CacheStore | None = None,
    ):
        self.orchestrator = orchestrator or Orchestrator()
        self.cache = cache or get_cache_store()

    async def plan_trip(self, preferences: TripPreferences | dict[str, Any]) -> PlanResult:
        """
        Plan a trip and cache the result under its location key.

        Raises:
            ValidationError: If the preferences are invalid
            RunFatalError: If the run aborts
        """
        preferences = validate_preferences(preferences)
        state = await self.orchestrator.execute(preferences)
        result = build_plan_result(state)
        await self._cache_plan(preferences, result)
        return result

    async def _cache_plan(self, preferences: TripPreferences, result: PlanResult) -> None:
        key = cache_keys.generate_travel_plan_key(preferences)
        if not await self.cache.test_connection():
            logger.warning(f"Cache unreachable, plan not cached: {key}")
            return
        try:
            await self.cache.set(key, result)
            logger.info(f"Cached travel plan: {key}")
        except CacheUnavailableError as e:
            logger.warning(f"Plan not cached: {e!s}")

    async def get_cached_plan(
        self, preferences: TripPreferences | dict[str, Any]
    ) -> PlanResult | None:
        """Previously computed plan for these preferences, if still cached."""
        key = cache_keys.generate_travel_plan_key(validate_preferences(preferences))
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            return PlanResult.model_validate(cached)
        except ValueError as e:
            logger.warning(f"Ignoring malformed cached plan at {key}: {e!s}")
            return None

    @staticmethod
    def chat_key(plan_key: str) -> str:
        return cache_keys.chat_history(
            plan_key.replace(cache_keys.TRAVEL_PLAN_PREFIX, "", 1)
        )

    async def append_chat_message(
        self, plan_key: str, role: MessageRole | str, content: str
    ) -> dict[str, Any]:
        """Record a chat message about a plan. Returns the stored entry."""
        entry = {
            "role": MessageRole(role).value,
            "content": content,
            "timestamp": utc_now().isoformat(),
        }
        await self.cache.push_to_list(self.chat_key(plan_key), entry)
        return entry

    async def get_chat_history(self, plan_key: str) -> list[dict[str, Any]]:
        """Chat messages about a plan, oldest first."""
        return list(reversed(await self.cache.get_list(self.chat_key(plan_key))))
