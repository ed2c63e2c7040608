"""Graph construction and the stage registry."""

from travel_orchestrator.orchestration.core.graph_builder import (
    create_orchestration_graph,
    route_from_state,
)
from travel_orchestrator.orchestration.core.stage_registry import (
    Stage,
    StageRegistry,
    build_default_registry,
)

__all__ = [
    "Stage",
    "StageRegistry",
    "build_default_registry",
    "create_orchestration_graph",
    "route_from_state",
]
