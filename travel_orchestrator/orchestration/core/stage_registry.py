"""
Stage registry for the planning pipeline.

Maps each ``StageId`` to the object that executes it. The registry is built
once and is read-only afterwards; tests build their own registries with fake
stages instead of patching a global one.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol

from google import genai

from travel_orchestrator.data.models import StageResult
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.utils.error_handling import StageNotFoundError
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)


class Stage(Protocol):
    async def run(self, state: ExecutionState) -> StageResult: ...


class StageRegistry:
    """Immutable mapping from stage identifier to implementation."""

    def __init__(self, stages: Mapping[StageId, Stage]):
        if StageId.END in stages:
            raise ValueError("The END sentinel cannot have an implementation")
        self._stages: Mapping[StageId, Stage] = MappingProxyType(dict(stages))
        for stage_id, stage in self._stages.items():
            logger.debug(f"Registered stage: {stage_id.value} ({type(stage).__name__})")

    def get(self, stage_id: StageId) -> Stage:
        """
        Return the implementation for ``stage_id``.

        Raises:
            StageNotFoundError: If the stage has no implementation
        """
        try:
            return self._stages[stage_id]
        except KeyError:
            raise StageNotFoundError(getattr(stage_id, "value", str(stage_id))) from None

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._stages

    @property
    def stage_ids(self) -> list[StageId]:
        return list(self._stages)


def build_default_registry(client: genai.Client | None = None) -> StageRegistry:
    """Registry with the three production stages sharing one Gemini client."""
    from travel_orchestrator.agents.city_selector import CitySelectorStage
    from travel_orchestrator.agents.local_expert import LocalExpertStage
    from travel_orchestrator.agents.travel_concierge import TravelConciergeStage

    registry = StageRegistry(
        {
            StageId.SELECTION: CitySelectorStage(client=client),
            StageId.ENRICHMENT: LocalExpertStage(client=client),
            StageId.SCHEDULING: TravelConciergeStage(client=client),
        }
    )
    logger.info("Default stages registered")
    return registry
