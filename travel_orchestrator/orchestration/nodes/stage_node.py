"""
Graph node that runs one pipeline iteration.

Every node in the orchestration graph is built by ``create_stage_node``: it
runs the stage, executes the requested tools, stores the output and decides
where the run goes next. Nodes return field updates and never mutate the
state they receive.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from travel_orchestrator.config import OrchestratorConfig
from travel_orchestrator.data.models import Message, MessageRole, ToolCallRecord
from travel_orchestrator.orchestration.core.stage_registry import StageRegistry
from travel_orchestrator.orchestration.routing.conditions import next_stage
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.tools.invoker import ToolInvoker
from travel_orchestrator.utils.error_handling import (
    OrchestrationTimeoutError,
    RecursionLimitError,
    RunFatalError,
    StageExecutionError,
)
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

NodeFunction = Callable[[ExecutionState], Awaitable[dict[str, Any]]]


def summarize_tool_calls(records: list[ToolCallRecord]) -> str:
    parts = [
        f"{record.tool}: {'ok' if record.succeeded else f'failed ({record.error})'}"
        for record in records
    ]
    return f"Executed {len(records)} tool call(s): " + "; ".join(parts)


async def run_stage_iteration(
    state: ExecutionState,
    stage_id: StageId,
    registry: StageRegistry,
    invoker: ToolInvoker,
    settings: OrchestratorConfig,
) -> dict[str, Any]:
    """
    Execute ``stage_id`` once against ``state``.

    Returns:
        Updated state fields

    Raises:
        RecursionLimitError: If the step budget is already used up
        OrchestrationTimeoutError: If the run is past its deadline
        StageNotFoundError: If the stage is not registered
        StageExecutionError: If the stage raises
    """
    if state.step >= settings.recursion_limit:
        raise RecursionLimitError(settings.recursion_limit)
    if state.elapsed_since_start_ms() > settings.timeout_ms:
        raise OrchestrationTimeoutError(settings.timeout_ms)

    stage = registry.get(stage_id)
    logger.info(f"Step {state.step + 1}: running {stage_id.value}")

    try:
        result = await stage.run(state)
    except RunFatalError:
        raise
    except Exception as e:
        logger.error(f"Stage {stage_id.value} failed: {e!s}")
        raise StageExecutionError(str(e), stage_id.value, original_error=e) from e

    messages = list(state.messages)
    tool_calls = list(state.tool_calls)

    if settings.tools_enabled and result.tool_requests:
        records = await invoker.invoke_all(result.tool_requests)
        tool_calls = [*tool_calls, *records]
        messages.append(
            Message(
                role=MessageRole.TOOL,
                content=summarize_tool_calls(records),
                stage=stage_id.value,
            )
        )

    stage_outputs = {**state.stage_outputs, stage_id: result.output}
    messages.append(
        Message(role=MessageRole.ASSISTANT, content=result.summary, stage=stage_id.value)
    )

    update: dict[str, Any] = {
        "messages": messages,
        "tool_calls": tool_calls,
        "stage_outputs": stage_outputs,
        "step": state.step + 1,
    }

    if result.is_complete:
        following = StageId.END
    else:
        following = next_stage(
            stage_id, state.model_copy(update={"stage_outputs": stage_outputs})
        )

    if following is StageId.END:
        update.update(
            current_stage=StageId.END,
            is_complete=True,
            terminal_output=result.output,
        )
        logger.info(f"Run complete after {update['step']} step(s)")
    else:
        update["current_stage"] = following
    return update


def create_stage_node(
    stage_id: StageId,
    registry: StageRegistry,
    invoker: ToolInvoker,
    settings: OrchestratorConfig,
) -> NodeFunction:
    """
    Factory for the node function of ``stage_id``.

    Args:
        stage_id: Stage this node executes
        registry: Stage implementations
        invoker: Tool invoker for requested lookups
        settings: Run limits and the tools switch

    Returns:
        Async node function for the graph
    """

    async def node_function(state: ExecutionState) -> dict[str, Any]:
        return await run_stage_iteration(state, stage_id, registry, invoker, settings)

    node_function.__name__ = stage_id.value
    node_function.__doc__ = f"Run one iteration of the {stage_id.display_name} stage."
    return node_function
