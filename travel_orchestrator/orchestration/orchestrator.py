"""
Orchestrator for the planning pipeline.

Runs the three stages in sequence through the orchestration graph, bounded
by a step budget and a wall-clock timeout, and returns the final execution
state.
"""

import asyncio
from typing import Any

from langgraph.errors import GraphRecursionError

from travel_orchestrator.config import OrchestratorConfig, config
from travel_orchestrator.data.models import TripPreferences, validate_preferences
from travel_orchestrator.orchestration.core.graph_builder import (
    create_orchestration_graph,
)
from travel_orchestrator.orchestration.core.stage_registry import (
    StageRegistry,
    build_default_registry,
)
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.tools.invoker import ToolInvoker, build_default_invoker
from travel_orchestrator.utils.error_handling import (
    OrchestrationTimeoutError,
    RecursionLimitError,
    StageNotFoundError,
)
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)


class Orchestrator:
    """
    Executes planning runs.

    Args:
        registry: Stage implementations (defaults to the production stages)
        invoker: Tool invoker (defaults to search and calculate)
        settings: Run limits (defaults to the environment configuration)
    """

    def __init__(
        self,
        registry: StageRegistry | None = None,
        invoker: ToolInvoker | None = None,
        settings: OrchestratorConfig | None = None,
    ):
        self.registry = registry or build_default_registry()
        self.invoker = invoker or build_default_invoker()
        self.settings = settings or config.orchestrator
        self.graph = create_orchestration_graph(
            self.registry, self.invoker, self.settings
        )

    async def execute(
        self,
        preferences: TripPreferences | dict[str, Any],
        start_stage: StageId | str = StageId.SELECTION,
    ) -> ExecutionState:
        """
        Run the pipeline to completion.

        Args:
            preferences: Trip preferences (validated if given as a dict)
            start_stage: Stage to begin with

        Returns:
            The completed execution state

        Raises:
            ValidationError: If the preferences are invalid
            StageNotFoundError: If ``start_stage`` or a routed-to stage is unknown
            StageExecutionError: If a stage raises
            RecursionLimitError: If the step budget runs out before completion
            OrchestrationTimeoutError: If the run exceeds its timeout
        """
        preferences = validate_preferences(preferences)
        try:
            start_stage = StageId(start_stage)
        except ValueError:
            raise StageNotFoundError(str(start_stage)) from None
        if start_stage is StageId.END:
            raise StageNotFoundError(start_stage.value)

        state = ExecutionState.initial(preferences, start_stage)
        limit = self.settings.recursion_limit
        logger.info(
            f"Starting run for {preferences.destination} at {start_stage.value} "
            f"(limit {limit} steps, timeout {self.settings.timeout_ms}ms)"
        )

        try:
            result = await asyncio.wait_for(
                # Headroom so the node-level step check fires before LangGraph's
                self.graph.ainvoke(state, config={"recursion_limit": limit + 2}),
                timeout=self.settings.timeout_seconds,
            )
        except TimeoutError:
            logger.error(f"Run timed out after {self.settings.timeout_ms}ms")
            raise OrchestrationTimeoutError(self.settings.timeout_ms) from None
        except GraphRecursionError as e:
            logger.error(f"Graph recursion limit reached: {e!s}")
            raise RecursionLimitError(limit) from e

        final = (
            result
            if isinstance(result, ExecutionState)
            else ExecutionState.model_validate(result)
        )
        if not final.is_complete:
            raise RecursionLimitError(limit)

        logger.info(
            f"Run finished in {final.step} step(s) with "
            f"{len(final.tool_calls)} tool call(s)"
        )
        return final

    def describe(self) -> dict[str, Any]:
        """Registered stages, tools and limits, for health reporting."""
        return {
            "stages": [stage.value for stage in self.registry.stage_ids],
            "tools": self.invoker.tool_names,
            "recursion_limit": self.settings.recursion_limit,
            "timeout_ms": self.settings.timeout_ms,
            "tools_enabled": self.settings.tools_enabled,
        }
