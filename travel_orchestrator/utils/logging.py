"""
Logging framework for the Travel Orchestrator system.

This module configures loguru for the application and provides a
stage-aware logger used by the pipeline stages and the orchestrator.
"""

import json
import os
import sys
from typing import Any

from loguru import logger

from travel_orchestrator.config import LogLevel


def get_logger(name: str):
    """
    Get a logger instance for the specified module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance with the module name attached
    """
    return logger.bind(name=name)


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[stage]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[stage]} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(
    log_level: LogLevel | str = LogLevel.INFO, log_file: str | None = None
):
    """
    Configure loguru sinks for the orchestrator.

    Records logged outside a stage show ``-`` in the stage column.

    Args:
        log_level: The logging level to use (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path; rotated at 10 MB and zipped
    """
    if isinstance(log_level, str):
        log_level = LogLevel(log_level.upper())

    logger.remove()
    logger.configure(extra={"stage": "-"})
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level.value, colorize=True)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level.value,
            rotation="10 MB",
            compression="zip",
        )

    logger.info(f"Logging initialized with level {log_level.value}")


class StageLogger:
    """Logger whose records all carry the stage identifier."""

    def __init__(self, stage_name: str):
        self.stage_name = stage_name
        self.logger = logger.bind(stage=stage_name)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message, **kwargs)

    def log_llm_input(self, model: str, prompt: str, temperature: float):
        """
        Log a request to a language model.

        Args:
            model: Name of the model
            prompt: Prompt text sent to the model
            temperature: Temperature setting
        """
        self.debug(
            f"LLM Request: {model} - Temperature: {temperature}",
            model=model,
            temperature=temperature,
            prompt_chars=len(prompt),
        )

    def log_llm_output(self, model: str, response: Any):
        """Log a structured language model response."""
        self.debug(
            f"LLM Response: {model}",
            model=model,
            response=self._safe_json(response),
        )

    def log_tool_requests(self, requests: list[Any]):
        """Log the tool requests a stage emitted."""
        names = [getattr(request, "tool", str(request)) for request in requests]
        self.debug(
            f"Stage {self.stage_name} requested {len(names)} tool call(s)",
            tools=names,
        )

    def _safe_json(self, obj: Any) -> str | None:
        """
        Safely convert an object to JSON, handling conversion errors.

        Args:
            obj: Object to convert to JSON

        Returns:
            JSON string or None if the object is None
        """
        if obj is None:
            return None

        if hasattr(obj, "model_dump_json"):
            return obj.model_dump_json()

        try:
            return json.dumps(obj, default=str)
        except (TypeError, ValueError) as e:
            self.warning(f"Failed to serialize object to JSON: {e!s}")
            return str(obj)
