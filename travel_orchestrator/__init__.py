"""
Travel Orchestrator.

A three-stage trip planning pipeline (city selection, local enrichment,
scheduling) run through a LangGraph state graph, with tool calls, a cache
store and a background job queue.
"""

__version__ = "0.1.0"
