"""
Routing conditions for the planning pipeline.

Each executable stage has exactly one routing rule. A rule is a pure
function of the state after the stage's output has been stored, and returns
the next stage or ``StageId.END``.
"""

from collections.abc import Callable, Mapping
from types import MappingProxyType

from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId

RoutingRule = Callable[[ExecutionState], StageId]


def after_selection(state: ExecutionState) -> StageId:
    """Move on once a city has been selected, otherwise select again."""
    analysis = state.output_for(StageId.SELECTION)
    if analysis is not None and getattr(analysis, "selected_city", None):
        return StageId.ENRICHMENT
    return StageId.SELECTION


def after_enrichment(state: ExecutionState) -> StageId:
    """Move on once local insights exist, otherwise enrich again."""
    analysis = state.output_for(StageId.ENRICHMENT)
    if analysis is not None and getattr(analysis, "insights", None):
        return StageId.SCHEDULING
    return StageId.ENRICHMENT


def after_scheduling(state: ExecutionState) -> StageId:
    return StageId.END


ROUTES: Mapping[StageId, RoutingRule] = MappingProxyType(
    {
        StageId.SELECTION: after_selection,
        StageId.ENRICHMENT: after_enrichment,
        StageId.SCHEDULING: after_scheduling,
    }
)

_unrouted = set(StageId.executable()) - set(ROUTES)
if _unrouted:
    raise RuntimeError(
        f"No routing rule for stage(s): {', '.join(sorted(s.value for s in _unrouted))}"
    )


def next_stage(stage: StageId, state: ExecutionState) -> StageId:
    """Apply the routing rule of ``stage`` to ``state``."""
    return ROUTES[stage](state)
