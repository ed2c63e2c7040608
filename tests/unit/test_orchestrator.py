"""Tests for the orchestrator and its graph."""

import pytest
from fakes import FailingTool, FakeSearchTool, Note, RaisingStage, ScriptedStage

from travel_orchestrator.config import OrchestratorConfig
from travel_orchestrator.data.models import (
    CityAnalysis,
    LocalExpertAnalysis,
    MessageRole,
    StageResult,
    TravelLogistics,
)
from travel_orchestrator.orchestration.core.stage_registry import (
    StageRegistry,
    build_default_registry,
)
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.tools.calculate import CalculateTool
from travel_orchestrator.tools.invoker import ToolInvoker
from travel_orchestrator.utils.error_handling import (
    OrchestrationTimeoutError,
    RecursionLimitError,
    StageExecutionError,
    StageNotFoundError,
    ValidationError,
)


async def test_seoul_end_to_end(orchestrator, seoul_preferences, search_tool):
    state = await orchestrator.execute(seoul_preferences)

    assert state.is_complete
    assert state.current_stage is StageId.END
    assert state.step == 3
    assert state.stages_executed == [
        "city_selector",
        "local_expert",
        "travel_concierge",
    ]

    city = state.output_for(StageId.SELECTION)
    local = state.output_for(StageId.ENRICHMENT)
    logistics = state.output_for(StageId.SCHEDULING)
    assert isinstance(city, CityAnalysis)
    assert "Seoul" in city.selected_city
    assert isinstance(local, LocalExpertAnalysis)
    assert local.insights
    assert isinstance(logistics, TravelLogistics)
    assert len(logistics.schedule) == seoul_preferences.days
    assert state.terminal_output == logistics

    # one selection search, six enrichment searches, one budget calculation
    assert [call.tool for call in state.tool_calls].count("search") == 7
    assert state.tool_calls[-1].tool == "calculate"
    assert all(call.succeeded for call in state.tool_calls)
    assert len(search_tool.queries) == 7


async def test_messages_follow_the_pipeline(orchestrator, seoul_preferences):
    state = await orchestrator.execute(seoul_preferences)

    assert state.messages[0].role is MessageRole.USER
    assistant = [m for m in state.messages if m.role is MessageRole.ASSISTANT]
    assert [m.stage for m in assistant] == [stage.value for stage in StageId.executable()]
    assert any(m.role is MessageRole.TOOL for m in state.messages)


async def test_tool_failure_is_recorded_and_run_completes(
    failing_genai_client, seoul_preferences, settings
):
    invoker = ToolInvoker([FailingTool("search"), CalculateTool()])
    orchestrator = Orchestrator(
        registry=build_default_registry(client=failing_genai_client),
        invoker=invoker,
        settings=settings,
    )

    state = await orchestrator.execute(seoul_preferences)

    assert state.is_complete
    searches = [call for call in state.tool_calls if call.tool == "search"]
    assert searches
    assert all(not call.succeeded for call in searches)
    assert searches[0].error == "search backend down"


async def test_tools_disabled_skips_invocation(
    failing_genai_client, seoul_preferences, search_tool
):
    orchestrator = Orchestrator(
        registry=build_default_registry(client=failing_genai_client),
        invoker=ToolInvoker([search_tool]),
        settings=OrchestratorConfig(tools_enabled=False),
    )

    state = await orchestrator.execute(seoul_preferences)

    assert state.is_complete
    assert state.tool_calls == []
    assert search_tool.queries == []


async def test_raising_stage_fails_the_run(seoul_preferences, invoker, settings):
    registry = StageRegistry({StageId.SELECTION: RaisingStage()})
    orchestrator = Orchestrator(registry=registry, invoker=invoker, settings=settings)

    with pytest.raises(StageExecutionError) as exc_info:
        await orchestrator.execute(seoul_preferences)

    assert exc_info.value.stage == "city_selector"
    assert isinstance(exc_info.value.original_error, ValueError)


async def test_incomplete_stage_hits_recursion_limit(seoul_preferences, invoker):
    # No selected_city, so selection routes back onto itself
    stage = ScriptedStage(StageResult(output=Note(text="thinking"), summary="again"))
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: stage}),
        invoker=invoker,
        settings=OrchestratorConfig(recursion_limit=5),
    )

    with pytest.raises(RecursionLimitError) as exc_info:
        await orchestrator.execute(seoul_preferences)

    assert exc_info.value.limit == 5
    assert stage.calls == 5


async def test_slow_stage_times_out(seoul_preferences, invoker):
    stage = ScriptedStage(
        StageResult(output=Note(text="late"), summary="late", is_complete=True),
        delay=1.0,
    )
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: stage}),
        invoker=invoker,
        settings=OrchestratorConfig(timeout_ms=50),
    )

    with pytest.raises(OrchestrationTimeoutError):
        await orchestrator.execute(seoul_preferences)


async def test_completion_signal_ends_run_early(seoul_preferences, invoker, settings):
    stage = ScriptedStage(
        StageResult(output=Note(text="done"), summary="done", is_complete=True)
    )
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: stage}),
        invoker=invoker,
        settings=settings,
    )

    state = await orchestrator.execute(seoul_preferences)

    assert state.is_complete
    assert state.step == 1
    assert state.terminal_output == Note(text="done")


async def test_unknown_start_stage(orchestrator, seoul_preferences):
    with pytest.raises(StageNotFoundError):
        await orchestrator.execute(seoul_preferences, start_stage="nowhere")

    with pytest.raises(StageNotFoundError):
        await orchestrator.execute(seoul_preferences, start_stage=StageId.END)


async def test_routing_to_unregistered_stage(
    failing_genai_client, seoul_preferences, invoker, settings
):
    full = build_default_registry(client=failing_genai_client)
    registry = StageRegistry({StageId.SELECTION: full.get(StageId.SELECTION)})
    orchestrator = Orchestrator(registry=registry, invoker=invoker, settings=settings)

    with pytest.raises(StageNotFoundError) as exc_info:
        await orchestrator.execute(seoul_preferences)

    assert exc_info.value.stage == "local_expert"


async def test_start_at_later_stage(orchestrator, seoul_preferences):
    state = await orchestrator.execute(seoul_preferences, start_stage="travel_concierge")

    assert state.step == 1
    assert state.stages_executed == ["travel_concierge"]
    logistics = state.output_for(StageId.SCHEDULING)
    # Without a selection the schedule is built for the requested destination
    assert "Seoul" in logistics.schedule[0].title


async def test_invalid_preferences_rejected_before_run(orchestrator):
    with pytest.raises(ValidationError) as exc_info:
        await orchestrator.execute({"destination": "Seoul"})

    assert "budget" in exc_info.value.missing_fields


def test_describe_lists_stages_and_tools(orchestrator):
    description = orchestrator.describe()

    assert description["stages"] == [
        "city_selector",
        "local_expert",
        "travel_concierge",
    ]
    assert description["tools"] == ["calculate", "search"]
    assert description["recursion_limit"] == 150


def test_registry_rejects_end_sentinel():
    with pytest.raises(ValueError):
        StageRegistry({StageId.END: FakeSearchTool()})
