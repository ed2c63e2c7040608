"""
Orchestration package for the planning pipeline.

Connects the stages through a LangGraph state graph whose edges follow a
closed routing table, bounded by a step budget and a run timeout.
"""

from travel_orchestrator.orchestration.core import (
    StageRegistry,
    build_default_registry,
    create_orchestration_graph,
)
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.orchestration.states import ExecutionState, StageId

__all__ = [
    "ExecutionState",
    "Orchestrator",
    "StageId",
    "StageRegistry",
    "build_default_registry",
    "create_orchestration_graph",
]
