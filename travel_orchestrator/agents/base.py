"""
Base stage class for the planning pipeline.

Every stage asks Gemini for a structured JSON answer and, when that fails
for any reason (no API key, transport error, invalid JSON), replaces it with
a deterministic local computation. The orchestrator only ever sees the
``run`` interface and cannot tell which path produced the output.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel

from travel_orchestrator.config import config as app_config
from travel_orchestrator.data.models import StageResult, TripPreferences
from travel_orchestrator.orchestration.states.execution_state import ExecutionState
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.utils.logging import StageLogger

DraftT = TypeVar("DraftT", bound=BaseModel)


@dataclass
class StageConfig:
    """Configuration for a stage's model call."""

    name: str
    instructions: str
    model: str = "gemini-2.5-flash"
    temperature: float = 0.7
    max_tokens: int | None = None

    @classmethod
    def for_stage(cls, stage: StageId, name: str, instructions: str) -> "StageConfig":
        """Build a config using the model settings configured for ``stage``."""
        model_config = app_config.get_stage_model(stage.value)
        return cls(
            name=name,
            instructions=instructions,
            model=model_config.name,
            temperature=model_config.temperature,
            max_tokens=model_config.max_tokens,
        )


class BaseStage(ABC, Generic[DraftT]):
    """
    Base class for the three pipeline stages.

    Subclasses set ``stage_id`` and ``response_model``, build the prompt,
    provide the local fallback and turn the draft into a ``StageResult``.

    Args:
        config: Model configuration for the stage
        client: Gemini client (optional). Created on first use when omitted,
            so constructing a stage never requires credentials.
    """

    stage_id: StageId
    response_model: type[DraftT]

    def __init__(self, config: StageConfig, client: genai.Client | None = None):
        self.config = config
        self._client = client
        self.logger = StageLogger(self.stage_id.value)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=app_config.api.gemini_api_key)
        return self._client

    async def generate(self, prompt: str) -> DraftT:
        """
        Ask the model for a ``response_model`` instance.

        Raises:
            Whatever the client raises, or ``pydantic.ValidationError`` for
            answers that do not match the schema
        """
        self.logger.log_llm_input(self.config.model, prompt, self.config.temperature)
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=[
                types.Content(role="user", parts=[types.Part.from_text(text=prompt)])
            ],
            config=types.GenerateContentConfig(
                temperature=self.config.temperature,
                max_output_tokens=self.config.max_tokens,
                system_instruction=self.config.instructions,
                response_mime_type="application/json",
                response_schema=self.response_model,
            ),
        )
        draft = self.response_model.model_validate_json(response.text or "")
        self.logger.log_llm_output(self.config.model, draft)
        return draft

    async def produce(self, state: ExecutionState) -> tuple[DraftT, bool]:
        """
        Generated draft, or the fallback when generation fails.

        Returns:
            The draft and whether it came from the fallback
        """
        try:
            return await self.generate(self.build_prompt(state)), False
        except Exception as e:
            self.logger.warning(
                f"{self.name} generation failed, using local fallback: {e!s}"
            )
            return self.fallback(state), True

    async def run(self, state: ExecutionState) -> StageResult:
        draft, used_fallback = await self.produce(state)
        result = self.finalize(state, draft)
        self.logger.info(
            f"{self.name} complete"
            f"{' (fallback)' if used_fallback else ''}: {result.summary}"
        )
        if result.tool_requests:
            self.logger.log_tool_requests(result.tool_requests)
        return result

    @abstractmethod
    def build_prompt(self, state: ExecutionState) -> str:
        pass

    @abstractmethod
    def fallback(self, state: ExecutionState) -> DraftT:
        """Deterministic draft computed without the model."""

    @abstractmethod
    def finalize(self, state: ExecutionState, draft: DraftT) -> StageResult:
        """Add locally computed fields and tool requests to a draft."""

    @staticmethod
    def describe_trip(preferences: TripPreferences) -> dict[str, Any]:
        return {
            "destination": preferences.destination,
            "coming_from": preferences.coming_from or "Not specified",
            "budget": preferences.budget,
            "interests": preferences.interests,
            "travelers": preferences.travelers,
            "start_date": preferences.start_date.isoformat(),
            "end_date": preferences.end_date.isoformat(),
        }
