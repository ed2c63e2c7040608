"""
Base class for tools the orchestrator can run on behalf of a stage.
"""

from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """
    A named lookup. Keyword arguments of ``run`` are the tool's parameters,
    so a ``ToolRequest(tool=name, params={...})`` maps directly onto a call.
    """

    name: str = ""
    description: str = ""

    @abstractmethod
    async def run(self, **params: Any) -> Any:
        """Execute the tool and return a JSON-serializable result."""
