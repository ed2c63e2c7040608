"""
Rate limiting and retries for outbound HTTP calls.

Tools that reach external services go through ``APIClient``, which throttles
requests per service with aiolimiter and retries transient failures with
tenacity before surfacing an ``APIError``.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import aiohttp
from aiolimiter import AsyncLimiter
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from travel_orchestrator.utils.error_handling import APIError

T = TypeVar("T")

HTTP_STATUS_OK = 200
HTTP_STATUS_REDIRECT = 300
HTTP_STATUS_TOO_MANY_REQUESTS = 429


@dataclass
class RateLimitConfig:
    """Throttle and retry settings for one external service."""

    service_name: str
    requests_per_minute: int
    max_retries: int = 3
    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 30.0
    retry_status_codes: tuple[int, ...] = field(
        default_factory=lambda: (429, 500, 502, 503, 504)
    )


class ServiceRateLimiter:
    """Token-bucket limiter for a single service."""

    def __init__(self, config: RateLimitConfig):
        self.config = config
        # At most requests_per_minute acquisitions in any 60 second window
        self.limiter = AsyncLimiter(max(1, config.requests_per_minute), 60)
        self.request_count = 0

    async def acquire(self) -> None:
        await self.limiter.acquire()
        self.request_count += 1

    def should_retry(self, exception: BaseException) -> bool:
        """Connection drops and retryable status codes are retried."""
        if isinstance(
            exception,
            aiohttp.ClientConnectorError
            | aiohttp.ServerDisconnectedError
            | TimeoutError,
        ):
            return True
        return (
            isinstance(exception, APIError)
            and exception.status_code in self.config.retry_status_codes
        )


class RateLimitManager:
    """Registry of per-service limiters."""

    def __init__(self, default_requests_per_minute: int = 30):
        self.limiters: dict[str, ServiceRateLimiter] = {}
        self.default_requests_per_minute = default_requests_per_minute

    def register_service(self, config: RateLimitConfig) -> ServiceRateLimiter:
        limiter = ServiceRateLimiter(config)
        self.limiters[config.service_name] = limiter
        logger.debug(
            f"Registered rate limiter for {config.service_name} "
            f"({config.requests_per_minute}/min)"
        )
        return limiter

    def get_limiter(self, service_name: str) -> ServiceRateLimiter:
        """Return the limiter for a service, registering a default one if needed."""
        if service_name not in self.limiters:
            logger.warning(
                f"No rate limiter configured for {service_name}, "
                f"using default configuration."
            )
            self.register_service(
                RateLimitConfig(
                    service_name=service_name,
                    requests_per_minute=self.default_requests_per_minute,
                )
            )
        return self.limiters[service_name]


rate_limit_manager = RateLimitManager()

DEFAULT_RATE_LIMITS = [
    RateLimitConfig(service_name="tavily", requests_per_minute=60, max_retries=3),
]


def initialize_rate_limiting() -> None:
    """Register the default limiters. Call once at startup."""
    for limit in DEFAULT_RATE_LIMITS:
        rate_limit_manager.register_service(limit)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    if exception:
        logger.warning(
            f"Request failed (attempt {retry_state.attempt_number}), "
            f"retrying in {retry_state.next_action.sleep:.2f} seconds: {exception!s}"
        )


async def with_rate_limit(
    service_name: str, func: Callable[[], Awaitable[T]]
) -> T:
    """
    Run ``func`` under the service's rate limit, retrying transient failures.

    Non-retryable errors propagate on the first attempt.
    """
    limiter = rate_limit_manager.get_limiter(service_name)
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(limiter.should_retry),
        stop=stop_after_attempt(limiter.config.max_retries),
        wait=wait_exponential(
            multiplier=1,
            min=limiter.config.min_wait_seconds,
            max=limiter.config.max_wait_seconds,
        ),
        reraise=True,
        before_sleep=_log_before_sleep,
    ):
        with attempt:
            await limiter.acquire()
            return await func()


class APIClient:
    """
    Base client for JSON APIs with rate limiting and retries.

    Args:
        service_name: Name used for the rate limiter and in error messages
        base_url: Base URL for API requests
        api_key: Bearer token sent with every request (optional)
        timeout_seconds: Total timeout for a single HTTP request
    """

    def __init__(
        self,
        service_name: str,
        base_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 30.0,
    ):
        self.service_name = service_name
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def post_json(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON response.

        Raises:
            APIError: If the service answers with a non-2xx status after retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        async def do_request() -> dict[str, Any]:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    url, json=payload, headers=self._headers()
                ) as response:
                    status_code = response.status
                    if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
                        raise APIError(
                            "Rate limit exceeded",
                            self.service_name,
                            status_code=status_code,
                        )
                    if not (HTTP_STATUS_OK <= status_code < HTTP_STATUS_REDIRECT):
                        raise APIError(
                            f"API request failed: {response.reason}",
                            self.service_name,
                            status_code=status_code,
                        )
                    try:
                        return await response.json()
                    except aiohttp.ContentTypeError:
                        return {"text": await response.text()}

        return await with_rate_limit(self.service_name, do_request)
