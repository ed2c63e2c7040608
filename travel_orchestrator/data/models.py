"""
Data models for the travel orchestrator.

This module defines the structures that flow through a planning run: the
trip preferences a caller submits, the tool request and tool call records
stages exchange with the orchestrator, the structured outputs of the three
stages, the background job record and the plan payload returned to callers.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from travel_orchestrator.utils.error_handling import ValidationError
from travel_orchestrator.utils.helpers import calculate_days, utc_now


class BudgetLevel(str, Enum):
    """Budget tiers understood by the planning stages."""

    BUDGET = "budget"
    MODERATE = "moderate"
    LUXURY = "luxury"


def budget_multiplier(budget: str) -> float:
    """Cost multiplier applied to base daily prices for a budget tier."""
    budget = budget.strip().lower()
    if budget == BudgetLevel.BUDGET.value:
        return 0.7
    if budget == BudgetLevel.LUXURY.value:
        return 1.5
    return 1.0


REQUIRED_PREFERENCE_FIELDS = (
    "destination",
    "budget",
    "start_date",
    "end_date",
    "travelers",
    "interests",
)


class TripPreferences(BaseModel):
    """What the traveller asked for. Immutable once a run starts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    destination: str
    budget: str
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    travelers: str
    interests: str
    coming_from: str | None = Field(default=None, alias="comingFrom")

    @field_validator("destination", "budget", "travelers", "interests", mode="before")
    @classmethod
    def validate_not_blank(cls, value: Any) -> Any:
        if isinstance(value, int | float) and not isinstance(value, bool):
            value = str(value)
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("must not be blank")
        return value

    @field_validator("coming_from", mode="before")
    @classmethod
    def blank_origin_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def validate_date_order(self) -> "TripPreferences":
        if self.end_date < self.start_date:
            raise ValueError("end date must not be before start date")
        return self

    @property
    def days(self) -> int:
        return calculate_days(self.start_date, self.end_date)

    def to_wire(self) -> dict[str, Any]:
        """JSON form using the camelCase names callers submit."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_ALIASES = {"start_date": "startDate", "end_date": "endDate"}


def validate_preferences(data: Any) -> TripPreferences:
    """
    Validate raw preferences into a ``TripPreferences`` model.

    Args:
        data: A ``TripPreferences`` instance or a dict with snake_case or
            camelCase keys

    Returns:
        The validated preferences

    Raises:
        ValidationError: If required fields are missing or blank, or any
            field is malformed. ``missing_fields`` lists the offending fields.
    """
    if isinstance(data, TripPreferences):
        return data
    if not isinstance(data, dict):
        raise ValidationError(
            "Preferences must be an object", missing_fields=list(REQUIRED_PREFERENCE_FIELDS)
        )

    missing = []
    for name in REQUIRED_PREFERENCE_FIELDS:
        value = data.get(name)
        if value is None and name in _ALIASES:
            value = data.get(_ALIASES[name])
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", missing_fields=missing
        )

    try:
        return TripPreferences.model_validate(data)
    except PydanticValidationError as e:
        fields = sorted(
            {
                str(error["loc"][0]) if error["loc"] else "preferences"
                for error in e.errors()
            }
        )
        raise ValidationError(
            f"Invalid preferences: {', '.join(fields)}", missing_fields=fields
        ) from e


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Message(BaseModel):
    """One entry of the run transcript."""

    role: MessageRole
    content: str
    stage: str | None = None
    timestamp: datetime = Field(default_factory=utc_now)


class ToolRequest(BaseModel):
    """A lookup a stage wants the orchestrator to perform."""

    tool: str
    params: dict[str, Any] = Field(default_factory=dict)
    purpose: str | None = None


class ToolSuccess(BaseModel):
    status: Literal["success"] = "success"
    output: Any


class ToolFailure(BaseModel):
    status: Literal["failure"] = "failure"
    error: str


ToolOutcome = Annotated[ToolSuccess | ToolFailure, Field(discriminator="status")]


class ToolCallRecord(BaseModel):
    """Result of one tool invocation, successful or not."""

    tool: str
    input: dict[str, Any] = Field(default_factory=dict)
    outcome: ToolOutcome
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, ToolSuccess)

    @property
    def output(self) -> Any | None:
        return self.outcome.output if isinstance(self.outcome, ToolSuccess) else None

    @property
    def error(self) -> str | None:
        return self.outcome.error if isinstance(self.outcome, ToolFailure) else None


# Stage outputs. The *Draft models are the JSON schemas requested from the
# language model; the full models add the locally computed fields.


class CityRecommendation(BaseModel):
    city: str
    rating: float = Field(ge=1, le=5)
    highlights: list[str] = Field(default_factory=list)
    budget: str
    best_for: str
    reasoning: str


class CitySelectionDraft(BaseModel):
    selected_city: str
    alternatives: list[CityRecommendation] = Field(default_factory=list)
    search_query: str | None = None
    confidence: float = Field(default=0.8, ge=0, le=1)
    reasoning: str = ""


class CityAnalysis(CitySelectionDraft):
    """Output of the city selection stage."""

    calculations: list[dict[str, Any]] = Field(default_factory=list)


class InsightType(str, Enum):
    HIDDEN_GEM = "hidden_gem"
    LOCAL_FAVORITE = "local_favorite"
    CULTURAL_TIP = "cultural_tip"
    SEASONAL_EVENT = "seasonal_event"
    INSIDER_SECRET = "insider_secret"


class LocalInsight(BaseModel):
    type: InsightType
    name: str
    description: str
    location: str
    rating: float | None = None
    price_range: str | None = None
    best_time: str | None = None
    local_tip: str | None = None


class LocalExpertAnalysis(BaseModel):
    """Output of the local expert enrichment stage."""

    insights: list[LocalInsight] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    cultural_tips: list[str] = Field(default_factory=list)
    seasonal_advice: list[str] = Field(default_factory=list)
    search_queries: list[str] = Field(default_factory=list)
    local_secrets: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.8, ge=0, le=1)


class Activity(BaseModel):
    time: str
    activity: str
    type: str
    duration: str | None = None
    cost: str | None = None
    specific_place: str | None = None
    address: str | None = None
    description: str | None = None
    booking_required: bool = False
    tips: list[str] = Field(default_factory=list)


class DaySchedule(BaseModel):
    day: int
    date: str
    title: str
    theme: str
    activities: list[Activity] = Field(default_factory=list)
    daily_budget: str
    neighborhoods: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)


class BudgetBreakdown(BaseModel):
    accommodation: str
    food: str
    activities: str
    transport: str
    misc: str


class TotalBudget(BaseModel):
    amount: str
    currency: str = "USD"
    breakdown: BudgetBreakdown


class EmergencyContacts(BaseModel):
    police: str = "Local emergency number"
    medical: str = "Local hospital contact"
    embassy: str = "Home country embassy contact"


class TripLogistics(BaseModel):
    transportation: list[str] = Field(default_factory=list)
    packing: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    emergency: EmergencyContacts = Field(default_factory=EmergencyContacts)


class ItineraryDraft(BaseModel):
    schedule: list[DaySchedule] = Field(default_factory=list)
    total_budget: TotalBudget
    logistics: TripLogistics = Field(default_factory=TripLogistics)
    confidence: float = Field(default=0.8, ge=0, le=1)


class TravelLogistics(ItineraryDraft):
    """Output of the scheduling stage."""

    booking_info: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    calculations: list[dict[str, Any]] = Field(default_factory=list)


class StageResult(BaseModel):
    """What a stage hands back to the orchestrator after one run."""

    output: SerializeAsAny[BaseModel]
    summary: str
    tool_requests: list[ToolRequest] = Field(default_factory=list)
    is_complete: bool = False


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobRecord(BaseModel):
    """Persisted state of a background planning job."""

    id: str
    status: JobStatus = JobStatus.WAITING
    progress: int = Field(default=0, ge=0, le=100)
    result: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def validate_outcome_matches_status(self) -> "JobRecord":
        if self.result is not None and self.status != JobStatus.COMPLETED:
            raise ValueError("result is only allowed on completed jobs")
        if self.error is not None and self.status != JobStatus.FAILED:
            raise ValueError("error is only allowed on failed jobs")
        if self.status == JobStatus.COMPLETED and self.result is None:
            raise ValueError("completed jobs must carry a result")
        return self


class OrchestrationSummary(BaseModel):
    steps: int
    stages_executed: list[str]
    tool_calls: int
    execution_time_ms: int


class Itinerary(BaseModel):
    destination: str
    local_insights: list[LocalInsight] = Field(default_factory=list)
    schedule: list[DaySchedule] = Field(default_factory=list)
    budget: TotalBudget | None = None


class WorkflowData(BaseModel):
    city_analysis: CityAnalysis | None = None
    local_insights: LocalExpertAnalysis | None = None
    travel_logistics: TravelLogistics | None = None
    tool_results: list[ToolCallRecord] = Field(default_factory=list)


class PlanResult(BaseModel):
    """Plan payload returned by the synchronous path and stored by jobs."""

    success: bool = True
    orchestration: OrchestrationSummary
    recommendations: list[CityRecommendation] = Field(default_factory=list)
    itinerary: Itinerary
    workflow_data: WorkflowData
