"""
Stage identifiers for the planning pipeline.

The set is closed: routing and registry tables are checked against it so a
stage cannot be added without deciding where it routes.
"""

from enum import Enum


class StageId(str, Enum):
    """Pipeline stages, in execution order, plus the terminal sentinel."""

    SELECTION = "city_selector"
    ENRICHMENT = "local_expert"
    SCHEDULING = "travel_concierge"
    END = "__end__"

    @classmethod
    def executable(cls) -> tuple["StageId", ...]:
        """Stages that have an implementation (everything except END)."""
        return tuple(stage for stage in cls if stage is not cls.END)

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()
