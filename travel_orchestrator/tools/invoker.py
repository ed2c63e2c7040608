"""
Tool invoker.

Runs the tool requests a stage emits and normalizes every outcome into a
``ToolCallRecord``. A failing or unknown tool never raises out of the
invoker; it is recorded as a ``ToolFailure`` and the run continues.
"""

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from travel_orchestrator.config import APIConfig, config
from travel_orchestrator.data.models import (
    ToolCallRecord,
    ToolFailure,
    ToolRequest,
    ToolSuccess,
)
from travel_orchestrator.tools.base import Tool
from travel_orchestrator.tools.calculate import CalculateTool
from travel_orchestrator.tools.search import TavilySearchTool
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

TOOL_NOT_AVAILABLE = "tool not available"


class ToolInvoker:
    """Dispatches tool requests to a fixed set of tools."""

    def __init__(self, tools: Iterable[Tool]):
        self._tools: Mapping[str, Tool] = MappingProxyType(
            {tool.name: tool for tool in tools}
        )

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._tools)

    async def invoke(self, request: ToolRequest) -> ToolCallRecord:
        tool = self._tools.get(request.tool)
        if tool is None:
            logger.warning(f"Requested unknown tool '{request.tool}'")
            return ToolCallRecord(
                tool=request.tool,
                input=request.params,
                outcome=ToolFailure(error=TOOL_NOT_AVAILABLE),
            )

        try:
            output = await tool.run(**request.params)
        except Exception as e:
            logger.warning(f"Tool '{request.tool}' failed: {e!s}")
            return ToolCallRecord(
                tool=request.tool,
                input=request.params,
                outcome=ToolFailure(error=str(e) or type(e).__name__),
            )

        logger.debug(f"Tool '{request.tool}' succeeded")
        return ToolCallRecord(
            tool=request.tool, input=request.params, outcome=ToolSuccess(output=output)
        )

    async def invoke_all(self, requests: Iterable[ToolRequest]) -> list[ToolCallRecord]:
        """Run requests one at a time, in order; one record per request."""
        records = []
        for request in requests:
            records.append(await self.invoke(request))
        return records


def build_default_invoker(api_config: APIConfig | None = None) -> ToolInvoker:
    api_config = api_config or config.api
    return ToolInvoker(
        [TavilySearchTool(api_key=api_config.tavily_api_key), CalculateTool()]
    )
