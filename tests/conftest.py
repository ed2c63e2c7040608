"""
Pytest configuration for the Travel Orchestrator tests.
"""

import os

# Tests never reach Redis, Gemini or Tavily
os.environ["CACHE_BACKEND"] = "memory"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("TAVILY_API_KEY", None)

import pytest  # noqa: E402

from travel_orchestrator.config import LogLevel  # noqa: E402
from travel_orchestrator.utils.logging import setup_logging  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up logging for tests."""
    setup_logging(LogLevel.DEBUG)
