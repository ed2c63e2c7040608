"""
Error handling utilities for the Travel Orchestrator system.

This module defines the exception hierarchy shared by the orchestrator,
the cache store and the job worker, plus small helpers to handle errors
consistently across the application.

Hierarchy:

    TravelOrchestratorError
    ├── ValidationError            missing or malformed preferences
    ├── DependencyUnavailableError a backing service cannot be reached
    │   └── CacheUnavailableError
    ├── RunFatalError              aborts a single pipeline run
    │   ├── StageNotFoundError
    │   ├── StageExecutionError
    │   ├── RecursionLimitError
    │   └── OrchestrationTimeoutError
    ├── APIError                   external HTTP call failed
    ├── JobStateError              illegal job status transition
    └── ResourceNotFoundError
"""


class TravelOrchestratorError(Exception):
    """Base exception class for all Travel Orchestrator errors."""

    def __init__(self, message: str, original_error: Exception | None = None):
        """
        Initialize a TravelOrchestratorError.

        Args:
            message: Error message
            original_error: The original exception that caused this error (optional)
        """
        self.original_error = original_error
        if original_error:
            message = f"{message} - Original error: {original_error!s}"
        super().__init__(message)


class ValidationError(TravelOrchestratorError):
    """Error raised when trip preferences are missing or malformed."""

    def __init__(self, message: str, missing_fields: list[str] | None = None):
        self.missing_fields = list(missing_fields or [])
        super().__init__(message)


class DependencyUnavailableError(TravelOrchestratorError):
    """Error raised when a backing service (cache, queue) is unreachable."""

    pass


class CacheUnavailableError(DependencyUnavailableError):
    """Error raised when the cache store cannot be reached."""

    pass


class RunFatalError(TravelOrchestratorError):
    """Error that aborts a pipeline run with no partial result."""

    pass


class StageNotFoundError(RunFatalError):
    """Error raised when the current stage has no registered implementation."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Stage '{stage}' is not registered")


class StageExecutionError(RunFatalError):
    """Error raised when a stage fails while processing the run state."""

    def __init__(
        self, message: str, stage: str, original_error: Exception | None = None
    ):
        self.stage = stage
        super().__init__(f"Error executing stage '{stage}': {message}", original_error)


class RecursionLimitError(RunFatalError):
    """Error raised when a run exceeds its step budget."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Recursion limit of {limit} steps reached")


class OrchestrationTimeoutError(RunFatalError):
    """Error raised when a run exceeds its time budget."""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Workflow timed out after {timeout_ms}ms")


class APIError(TravelOrchestratorError):
    """Error raised when an external API request fails."""

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        """
        Initialize an APIError.

        Args:
            message: Error message
            service_name: Name of the API service
            status_code: HTTP status code (optional)
            original_error: The original exception that caused this error (optional)
        """
        self.service_name = service_name
        self.status_code = status_code
        status_str = f" (status: {status_code})" if status_code else ""
        full_message = f"Error in {service_name} API{status_str}: {message}"
        super().__init__(full_message, original_error)


class JobStateError(TravelOrchestratorError):
    """Error raised for an illegal job status transition."""

    pass


class ResourceNotFoundError(TravelOrchestratorError):
    """Error raised when a requested resource is not found."""

    pass


def error_type_for(error: Exception) -> str:
    """
    Map an exception to the error type reported to API callers.

    Returns one of ``missing_fields``, ``cache_unavailable``, ``not_found``
    or ``internal``.
    """
    if isinstance(error, ValidationError):
        return "missing_fields"
    if isinstance(error, DependencyUnavailableError):
        return "cache_unavailable"
    if isinstance(error, ResourceNotFoundError):
        return "not_found"
    return "internal"
