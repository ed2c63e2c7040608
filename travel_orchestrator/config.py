"""
Configuration management for the Travel Orchestrator system.

This module handles loading and managing configuration for the orchestration
engine, the background job worker and the cache store, including environment
variables, API keys and per-stage model settings.
"""

import os
from dataclasses import dataclass, field
from enum import Enum

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class LogLevel(str, Enum):
    """Log levels supported by the system."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheBackend(str, Enum):
    """Cache store implementations."""

    REDIS = "redis"
    MEMORY = "memory"


class OrchestratorConfig(BaseModel):
    """Limits for a single pipeline run."""

    recursion_limit: int = Field(default=150, description="Maximum loop iterations")
    timeout_ms: int = Field(default=300_000, description="Overall run timeout in ms")
    tools_enabled: bool = Field(default=True, description="Execute tool requests")

    @field_validator("recursion_limit", "timeout_ms")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Limits must be positive."""
        if value <= 0:
            raise ValueError(f"Limit must be positive, got {value}")
        return value

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(cls) -> "OrchestratorConfig":
        """Create an OrchestratorConfig from environment variables."""
        return cls(
            recursion_limit=int(os.getenv("RECURSION_LIMIT", "150")),
            timeout_ms=int(os.getenv("WORKFLOW_TIMEOUT_MS", "300000")),
            tools_enabled=_env_flag("ENABLE_TOOLS"),
        )


class CacheConfig(BaseModel):
    """Configuration for the cache store."""

    backend: CacheBackend = Field(default=CacheBackend.REDIS)
    redis_url: str = Field(default="redis://localhost:6379/0")
    ttl: int = Field(default=86_400, description="Retention window in seconds")
    list_limit: int = Field(default=50, description="Items kept per list key")

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create a CacheConfig from environment variables."""
        return cls(
            backend=CacheBackend(os.getenv("CACHE_BACKEND", "redis").lower()),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            ttl=int(os.getenv("CACHE_TTL", "86400")),
            list_limit=int(os.getenv("CACHE_LIST_LIMIT", "50")),
        )


class JobConfig(BaseModel):
    """Retry and concurrency settings for background jobs."""

    attempts: int = Field(default=3, description="Attempts per job")
    backoff_ms: int = Field(default=2000, description="First retry delay in ms")
    concurrency: int = Field(default=1, description="Jobs executed at once")

    @field_validator("attempts", "concurrency")
    @classmethod
    def validate_at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"Value must be at least 1, got {value}")
        return value

    @classmethod
    def from_env(cls) -> "JobConfig":
        """Create a JobConfig from environment variables."""
        return cls(
            attempts=int(os.getenv("JOB_ATTEMPTS", "3")),
            backoff_ms=int(os.getenv("JOB_BACKOFF_MS", "2000")),
            concurrency=int(os.getenv("WORKER_CONCURRENCY", "1")),
        )


class StageModelConfig(BaseModel):
    """Configuration for a stage's LLM model."""

    name: str = Field(..., description="Model name to use")
    temperature: float = Field(default=0.7, description="Model temperature")
    max_tokens: int | None = Field(default=None, description="Max tokens to generate")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: float) -> float:
        """Validate temperature is within reasonable bounds."""
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"Temperature must be between 0.0 and 1.0, got {value}")
        return value

    @classmethod
    def from_env(cls, prefix: str = "") -> "StageModelConfig":
        """Create a StageModelConfig from environment variables."""
        prefix = f"{prefix}_" if prefix else ""
        return cls(
            name=os.getenv(f"{prefix}MODEL", "gemini-2.5-flash"),
            temperature=float(os.getenv(f"{prefix}TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv(f"{prefix}MAX_TOKENS", "0")) or None,
        )


class APIConfig(BaseModel):
    """Configuration for external APIs."""

    gemini_api_key: str | None = Field(default=None, description="Gemini API key")
    tavily_api_key: str | None = Field(default=None, description="Tavily API key")

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Create an APIConfig from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
        )

    def missing_keys(self) -> list[str]:
        """Names of API keys that are not configured."""
        missing = []
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        if not self.tavily_api_key:
            missing.append("TAVILY_API_KEY")
        return missing


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create a SystemConfig from environment variables."""
        return cls(
            log_level=LogLevel(os.getenv("LOG_LEVEL", "INFO").upper()),
            environment=os.getenv("ENVIRONMENT", "development"),
        )


@dataclass
class TravelOrchestratorConfig:
    """Main configuration class for the Travel Orchestrator system."""

    api: APIConfig = field(default_factory=APIConfig.from_env)
    system: SystemConfig = field(default_factory=SystemConfig.from_env)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig.from_env)
    cache: CacheConfig = field(default_factory=CacheConfig.from_env)
    jobs: JobConfig = field(default_factory=JobConfig.from_env)
    stage_models: dict[str, StageModelConfig] = field(default_factory=dict)

    def __post_init__(self):
        """Initialize stage models if not provided."""
        if not self.stage_models:
            self.stage_models = {
                "city_selector": StageModelConfig.from_env("CITY_SELECTOR"),
                "local_expert": StageModelConfig.from_env("LOCAL_EXPERT"),
                "travel_concierge": StageModelConfig.from_env("TRAVEL_CONCIERGE"),
            }

    class ConfigurationError(Exception):
        """Exception raised for configuration validation errors."""

        pass

    def validate(self, raise_error: bool = False) -> bool:
        """
        Validate the configuration.

        Missing API keys only degrade behaviour (stages fall back to local
        generation, search calls are recorded as failed), so they are
        reported as warnings.

        Args:
            raise_error: If True, raise ConfigurationError instead of returning False

        Returns:
            True if configuration is valid, False otherwise
        """
        try:
            if self.cache.ttl <= 0:
                raise ValueError("Cache TTL must be positive")
            if self.cache.list_limit <= 0:
                raise ValueError("Cache list limit must be positive")
            if self.jobs.backoff_ms < 0:
                raise ValueError("Job backoff must not be negative")
        except ValueError as e:
            logger.error(f"Configuration validation failed: {e!s}")
            if raise_error:
                raise self.ConfigurationError(
                    f"Configuration validation failed: {e!s}"
                ) from e
            return False

        missing = self.api.missing_keys()
        if missing:
            logger.warning(
                f"API keys missing: {', '.join(missing)}. "
                f"Stages will use local fallbacks and search calls will fail."
            )
        return True

    def get_stage_model(self, stage_name: str) -> StageModelConfig:
        """
        Get model configuration for a specific stage.

        Args:
            stage_name: Stage identifier value

        Returns:
            StageModelConfig for the stage, or a default if not found
        """
        return self.stage_models.get(
            stage_name, StageModelConfig(name="gemini-2.5-flash")
        )


# Global configuration instance
config = TravelOrchestratorConfig()


def initialize_config(
    custom_config_path: str | None = None,
    validate: bool = True,
    raise_on_error: bool = False,
) -> TravelOrchestratorConfig:
    """
    Initialize and validate the configuration.

    Args:
        custom_config_path: Path to a custom .env file to load
        validate: Whether to validate the configuration
        raise_on_error: Whether to raise an exception on validation failure

    Returns:
        Initialized configuration object

    Raises:
        TravelOrchestratorConfig.ConfigurationError: If validation fails and
            raise_on_error is True
        FileNotFoundError: If custom_config_path is provided but does not exist
    """
    if custom_config_path:
        if not os.path.exists(custom_config_path):
            error_msg = f"Custom configuration file not found: {custom_config_path}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        logger.info(f"Loading custom configuration from {custom_config_path}")
        load_dotenv(custom_config_path, override=True)

        # Reload in place so modules holding a reference to `config` see it
        config.api = APIConfig.from_env()
        config.system = SystemConfig.from_env()
        config.orchestrator = OrchestratorConfig.from_env()
        config.cache = CacheConfig.from_env()
        config.jobs = JobConfig.from_env()
        config.stage_models = {}
        config.__post_init__()

    if validate:
        config.validate(raise_error=raise_on_error)

    return config
