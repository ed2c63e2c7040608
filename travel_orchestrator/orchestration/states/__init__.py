"""Run state and stage identifiers."""

from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId

__all__ = ["ExecutionState", "StageId"]
