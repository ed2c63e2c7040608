"""
State of a single pipeline run.

An ``ExecutionState`` is passed between the graph nodes. Nodes never mutate
it in place; they return updated fields and the graph merges them, so each
list in a state is a new list whenever it grows.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, SerializeAsAny

from travel_orchestrator.data.models import (
    Message,
    MessageRole,
    ToolCallRecord,
    TripPreferences,
)
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.utils.helpers import utc_now


class ExecutionState(BaseModel):
    """
    Everything known about a run: transcript, position in the pipeline,
    stage outputs and tool calls.
    """

    preferences: TripPreferences
    messages: list[Message] = Field(default_factory=list)
    current_stage: StageId = StageId.SELECTION
    step: int = 0
    stage_outputs: dict[StageId, SerializeAsAny[BaseModel]] = Field(
        default_factory=dict
    )
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    is_complete: bool = False
    terminal_output: SerializeAsAny[BaseModel] | None = None
    started_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def initial(
        cls, preferences: TripPreferences, start_stage: StageId = StageId.SELECTION
    ) -> "ExecutionState":
        """Fresh state with the preferences as the single user message."""
        request = (
            f"Plan a trip to {preferences.destination} from "
            f"{preferences.start_date.isoformat()} to {preferences.end_date.isoformat()} "
            f"for {preferences.travelers} traveler(s), {preferences.budget} budget, "
            f"interests: {preferences.interests}"
        )
        if preferences.coming_from:
            request += f", departing from {preferences.coming_from}"
        return cls(
            preferences=preferences,
            current_stage=start_stage,
            messages=[Message(role=MessageRole.USER, content=request)],
        )

    def output_for(self, stage: StageId) -> Any | None:
        return self.stage_outputs.get(stage)

    @property
    def stages_executed(self) -> list[str]:
        return [stage.value for stage in self.stage_outputs]

    @property
    def elapsed_ms(self) -> int:
        """Milliseconds between the first and the last message."""
        if len(self.messages) < 2:
            return 0
        delta = self.messages[-1].timestamp - self.messages[0].timestamp
        return int(delta.total_seconds() * 1000)

    def elapsed_since_start_ms(self, now: datetime | None = None) -> int:
        delta = (now or utc_now()) - self.started_at
        return int(delta.total_seconds() * 1000)
