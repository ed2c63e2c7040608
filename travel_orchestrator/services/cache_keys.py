"""
Cache key schema.

Every key the system reads or writes is built here so producers and
consumers agree on naming:

    travel_plan:<id>
    travel_plan:<destination>:from_<origin>:<start>_to_<end>[:<budget>][:<travelers>]
    user_history:<owner_id>
    job:<job_id>
    chat:<plan key without the travel_plan: prefix>
"""

from datetime import date
from typing import Any, NamedTuple

from travel_orchestrator.utils.helpers import slugify

TRAVEL_PLAN_PREFIX = "travel_plan:"


def _iso(value: date | str | None) -> str | None:
    if value is None or value == "":
        return None
    return value.isoformat() if isinstance(value, date) else str(value)


def travel_plan(plan_id: str) -> str:
    return f"{TRAVEL_PLAN_PREFIX}{plan_id}"


def travel_plan_by_location(
    destination: str,
    origin: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> str:
    """Key for a plan identified by where and when rather than by job."""
    clean_origin = slugify(origin) if origin else "anywhere"
    start, end = _iso(start_date), _iso(end_date)
    date_range = f"{start}_to_{end}" if start and end else "flexible_dates"
    return f"{TRAVEL_PLAN_PREFIX}{slugify(destination)}:from_{clean_origin}:{date_range}"


def user_history(owner_id: str) -> str:
    return f"user_history:{owner_id}"


def job(job_id: str) -> str:
    return f"job:{job_id}"


def chat_history(plan_id: str) -> str:
    return f"chat:{plan_id}"


def _pref(preferences: Any, name: str, alias: str | None = None) -> Any:
    if isinstance(preferences, dict):
        value = preferences.get(name)
        if value is None and alias:
            value = preferences.get(alias)
        return value
    return getattr(preferences, name, None)


def generate_travel_plan_key(preferences: Any) -> str:
    """
    Plan key for a set of trip preferences.

    Accepts a ``TripPreferences`` model or a dict using either snake_case or
    camelCase field names. Budget and traveler count are appended when set.
    """
    key = travel_plan_by_location(
        _pref(preferences, "destination"),
        _pref(preferences, "coming_from", "comingFrom"),
        _pref(preferences, "start_date", "startDate"),
        _pref(preferences, "end_date", "endDate"),
    )
    budget = _pref(preferences, "budget")
    if budget:
        key += f":{str(budget).lower()}"
    travelers = _pref(preferences, "travelers")
    if travelers:
        key += ":" + "_".join(str(travelers).lower().split())
    return key


def generate_chat_key(preferences: Any) -> str:
    """Chat history key for the plan these preferences identify."""
    plan_key = travel_plan_by_location(
        _pref(preferences, "destination"),
        _pref(preferences, "coming_from", "comingFrom"),
        _pref(preferences, "start_date", "startDate"),
        _pref(preferences, "end_date", "endDate"),
    )
    return chat_history(plan_key.replace(TRAVEL_PLAN_PREFIX, "", 1))


class ParsedPlanKey(NamedTuple):
    destination: str
    origin: str
    date_range: str
    budget: str
    travelers: str


def parse_travel_plan_key(key: str) -> ParsedPlanKey:
    """Split a location plan key back into its parts; missing parts are empty."""
    parts = key.replace(TRAVEL_PLAN_PREFIX, "", 1).split(":")
    parts += [""] * (5 - len(parts))
    destination, origin, date_range, budget, travelers = parts[:5]
    return ParsedPlanKey(
        destination=destination.replace("_", " "),
        origin=origin.replace("from_", "", 1).replace("_", " "),
        date_range=date_range,
        budget=budget,
        travelers=travelers,
    )
