"""Tests for the event handler."""

import pytest

import handler
from travel_orchestrator.utils.error_handling import CacheUnavailableError, error_type_for


@pytest.fixture
def wired_handler(monkeypatch, orchestrator, cache):
    """Handler module using the fallback-only orchestrator and an in-memory cache."""
    monkeypatch.setattr(handler, "_orchestrator", orchestrator)
    monkeypatch.setattr(handler, "_job_queue", None)
    monkeypatch.setattr(handler, "_job_queue_loop", None)
    monkeypatch.setattr(handler, "get_cache_store", lambda: cache)
    return handler


def event(action, **fields):
    return {"action": action, **fields}


def test_extract_user_id():
    assert handler._extract_user_id("USER#123") == "123"
    assert handler._extract_user_id("456") == "456"


def test_route_event():
    action, params = handler.route_event(
        event("job_status", userId="USER#7", jobId="travel_1_abc")
    )

    assert action == "job_status"
    assert params["user_id"] == "7"
    assert params["job_id"] == "travel_1_abc"
    assert params["preferences"] == {}
    assert params["role"] == "user"


def test_all_actions_are_routed():
    assert set(handler._HANDLERS) == {
        "plan_trip",
        "create_job",
        "job_status",
        "user_history",
        "chat_message",
        "chat_history",
        "health",
    }


async def test_unknown_action(wired_handler):
    response = await wired_handler.async_handler(event("dance"))

    assert response["status"] == "error"
    assert response["error_type"] == "unknown_action"


async def test_plan_trip(wired_handler, seoul_preferences):
    response = await wired_handler.async_handler(
        event("plan_trip", preferences=seoul_preferences.to_wire())
    )

    assert response["status"] == "ok"
    plan = response["plan"]
    assert plan["success"]
    assert plan["orchestration"]["stages_executed"][-1] == "travel_concierge"
    assert plan["itinerary"]["schedule"][0]["date"] == "2025-06-01"


async def test_missing_preferences_are_reported(wired_handler):
    response = await wired_handler.async_handler(
        event("plan_trip", preferences={"destination": "Seoul"})
    )

    assert response["status"] == "error"
    assert response["error_type"] == "missing_fields"
    assert "budget" in response["missing_fields"]


async def test_create_job_requires_user(wired_handler, seoul_preferences):
    response = await wired_handler.async_handler(
        event("create_job", preferences=seoul_preferences.to_wire())
    )

    assert response["error_type"] == "missing_fields"
    assert response["missing_fields"] == ["user_id"]


async def test_create_job_with_unreachable_cache(wired_handler, cache, seoul_preferences):
    async def unreachable():
        return False

    cache.test_connection = unreachable

    response = await wired_handler.async_handler(
        event("create_job", userId="USER#1", preferences=seoul_preferences.to_wire())
    )

    assert response["error_type"] == "cache_unavailable"
    await wired_handler._job_queue.stop()


async def test_unknown_job_is_not_found(wired_handler):
    response = await wired_handler.async_handler(event("job_status", jobId="nope"))

    assert response["error_type"] == "not_found"
    await wired_handler._job_queue.stop()


async def test_internal_errors_are_reported(wired_handler, cache, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(cache, "get_list", broken)

    response = await wired_handler.async_handler(
        event("chat_history", planKey="travel_plan:x")
    )

    assert response == {
        "status": "error",
        "error_type": "internal",
        "error": "disk on fire",
    }


async def test_chat_round_trip(wired_handler):
    plan_key = "travel_plan:seoul:from_tokyo:2025-06-01_to_2025-06-05"
    for message in ("first", "second"):
        response = await wired_handler.async_handler(
            event("chat_message", planKey=plan_key, message=message)
        )
        assert response["data"]["role"] == "user"

    response = await wired_handler.async_handler(event("chat_history", planKey=plan_key))

    assert [entry["content"] for entry in response["data"]] == ["first", "second"]


async def test_health(wired_handler):
    response = await wired_handler.async_handler(event("health"))

    assert response["status"] == "ok"
    assert response["data"]["cache"] is True
    assert response["data"]["orchestrator"]["stages"] == [
        "city_selector",
        "local_expert",
        "travel_concierge",
    ]


def test_sync_handler_drains_jobs(wired_handler, seoul_preferences):
    created = wired_handler.handler(
        event("create_job", userId="USER#42", preferences=seoul_preferences.to_wire())
    )
    assert created["status"] == "ok"

    status = wired_handler.handler(event("job_status", jobId=created["jobId"]))
    assert status["data"]["status"] == "completed"
    assert status["data"]["progress"] == 100

    history = wired_handler.handler(event("user_history", userId="USER#42"))
    assert history["data"][0]["id"] == created["jobId"]


def test_error_type_mapping():
    assert error_type_for(CacheUnavailableError("down")) == "cache_unavailable"
    assert error_type_for(KeyError("x")) == "internal"
