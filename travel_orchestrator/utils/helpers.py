"""
Helper utilities for the Travel Orchestrator system.

This module provides general utility functions used across the application.
"""

import re
import time
import uuid
from datetime import UTC, date, datetime


def generate_job_id(prefix: str = "travel") -> str:
    """
    Generate a unique background job ID.

    The ID has the shape ``<prefix>_<epoch_ms>_<random>`` so that two
    submissions with identical input in the same millisecond still differ.

    Args:
        prefix: Prefix for the ID

    Returns:
        A unique job ID string
    """
    epoch_ms = int(time.time() * 1000)
    return f"{prefix}_{epoch_ms}_{uuid.uuid4().hex[:9]}"


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


def slugify(text: str) -> str:
    """
    Normalize free text for use inside a cache key.

    Lowercases, drops everything outside ``[a-z0-9 ]`` and collapses
    whitespace runs to underscores.
    """
    cleaned = re.sub(r"[^a-z0-9\s]", "", text.lower())
    return re.sub(r"\s+", "_", cleaned).strip()


def calculate_days(start: date | str, end: date | str) -> int:
    """
    Number of days between two dates, never less than one.

    Args:
        start: Start date (``date`` or ISO string)
        end: End date (``date`` or ISO string)

    Returns:
        Absolute day difference, or 1 when both dates are the same
    """
    if isinstance(start, str):
        start = date.fromisoformat(start)
    if isinstance(end, str):
        end = date.fromisoformat(end)
    return abs((end - start).days) or 1
