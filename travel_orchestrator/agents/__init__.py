"""
Stage implementations for the planning pipeline.

Each stage asks Gemini for a structured draft and falls back to local
generation when the call fails.
"""

from travel_orchestrator.agents.base import BaseStage, StageConfig
from travel_orchestrator.agents.city_selector import CitySelectorStage
from travel_orchestrator.agents.local_expert import LocalExpertStage
from travel_orchestrator.agents.travel_concierge import TravelConciergeStage

__all__ = [
    "BaseStage",
    "CitySelectorStage",
    "LocalExpertStage",
    "StageConfig",
    "TravelConciergeStage",
]
