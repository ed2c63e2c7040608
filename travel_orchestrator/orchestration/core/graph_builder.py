"""
Graph builder for the planning pipeline.

Builds a LangGraph ``StateGraph`` over ``ExecutionState`` with one node per
stage. Edges are conditional on ``current_stage``, which each node sets
through the routing table, so a stage may loop back onto itself and the
graph leaves through ``END`` once the run is complete.
"""

from typing import Any

from langgraph.graph import END, START, StateGraph

from travel_orchestrator.config import OrchestratorConfig
from travel_orchestrator.orchestration.core.stage_registry import StageRegistry
from travel_orchestrator.orchestration.nodes.stage_node import create_stage_node
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.tools.invoker import ToolInvoker
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)


def route_from_state(state: ExecutionState) -> str:
    """Name of the node to run next, or END."""
    if state.is_complete or state.current_stage is StageId.END:
        return END
    return state.current_stage.value


def create_orchestration_graph(
    registry: StageRegistry,
    invoker: ToolInvoker,
    settings: OrchestratorConfig,
) -> Any:
    """
    Create the compiled orchestration graph.

    Every executable stage gets a node, registered or not, so that routing
    to an unregistered stage fails inside the node with StageNotFoundError.

    Returns:
        Compiled graph
    """
    logger.info("Creating orchestration graph")

    workflow = StateGraph(ExecutionState)
    path_map = {stage.value: stage.value for stage in StageId.executable()}
    path_map[END] = END

    for stage in StageId.executable():
        workflow.add_node(
            stage.value, create_stage_node(stage, registry, invoker, settings)
        )
        workflow.add_conditional_edges(stage.value, route_from_state, path_map)

    workflow.add_conditional_edges(START, route_from_state, path_map)

    logger.info("Orchestration graph created and compiled")
    return workflow.compile()
