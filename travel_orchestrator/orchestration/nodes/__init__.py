"""Node implementations for the planning graph."""

from travel_orchestrator.orchestration.nodes.stage_node import (
    create_stage_node,
    run_stage_iteration,
)

__all__ = ["create_stage_node", "run_stage_iteration"]
