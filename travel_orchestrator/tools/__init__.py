"""
Tools available to the planning stages.

Stages request tools by name; the ``ToolInvoker`` executes the requests and
records every outcome, so a failing tool never aborts a run.
"""

from travel_orchestrator.tools.base import Tool
from travel_orchestrator.tools.calculate import CalculateTool
from travel_orchestrator.tools.invoker import ToolInvoker, build_default_invoker
from travel_orchestrator.tools.search import TavilySearchTool

__all__ = [
    "CalculateTool",
    "TavilySearchTool",
    "Tool",
    "ToolInvoker",
    "build_default_invoker",
]
