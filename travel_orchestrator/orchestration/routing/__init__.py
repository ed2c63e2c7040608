"""
Routing logic for the planning pipeline.

Each stage has one routing function deciding the next stage from the
current state.
"""

from travel_orchestrator.orchestration.routing.conditions import (
    ROUTES,
    after_enrichment,
    after_scheduling,
    after_selection,
    next_stage,
)

__all__ = [
    "ROUTES",
    "after_enrichment",
    "after_scheduling",
    "after_selection",
    "next_stage",
]
