"""
Utility modules for the Travel Orchestrator system.

Logging, error types, rate limiting and small helpers shared by every
other package.
"""

from travel_orchestrator.utils.error_handling import (
    APIError,
    CacheUnavailableError,
    DependencyUnavailableError,
    JobStateError,
    OrchestrationTimeoutError,
    RecursionLimitError,
    RunFatalError,
    StageExecutionError,
    StageNotFoundError,
    TravelOrchestratorError,
    ValidationError,
)
from travel_orchestrator.utils.logging import StageLogger, get_logger, setup_logging

__all__ = [
    "APIError",
    "CacheUnavailableError",
    "DependencyUnavailableError",
    "JobStateError",
    "OrchestrationTimeoutError",
    "RecursionLimitError",
    "RunFatalError",
    "StageExecutionError",
    "StageLogger",
    "StageNotFoundError",
    "TravelOrchestratorError",
    "ValidationError",
    "get_logger",
    "setup_logging",
]
