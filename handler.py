"""
Event handler for the travel orchestrator.

Routes events by their "action" field to the planning service or the job
queue and returns JSON-ready payloads. Failures are returned as structured
errors carrying an ``error_type`` instead of being raised.
"""

import asyncio
from typing import Any

from travel_orchestrator.config import config
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.services.cache_service import get_cache_store
from travel_orchestrator.services.job_queue import JobQueue
from travel_orchestrator.services.plan_service import PlanningService
from travel_orchestrator.utils.error_handling import (
    ResourceNotFoundError,
    ValidationError,
    error_type_for,
)
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

_orchestrator: Orchestrator | None = None
_job_queue: JobQueue | None = None
_job_queue_loop: asyncio.AbstractEventLoop | None = None


def _extract_user_id(user_id_raw: str) -> str:
    """Extract user ID from USER#123 format."""
    if user_id_raw.startswith("USER#"):
        return user_id_raw[5:]
    return user_id_raw


def _get_orchestrator() -> Orchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = Orchestrator()
    return _orchestrator


def _get_job_queue() -> JobQueue:
    """Job queue bound to the running loop, with its workers started."""
    global _job_queue, _job_queue_loop
    loop = asyncio.get_running_loop()
    if _job_queue is None or _job_queue_loop is not loop:
        _job_queue = JobQueue(orchestrator=_get_orchestrator(), cache=get_cache_store())
        _job_queue_loop = loop
    _job_queue.start()
    return _job_queue


def route_event(event: dict[str, Any]) -> tuple[str, dict[str, Any]]:
    """Parse event and extract action + parameters."""
    action = event.get("action", "unknown")
    params: dict[str, Any] = {}

    user_id_raw = event.get("userId", "")
    if user_id_raw:
        params["user_id"] = _extract_user_id(user_id_raw)

    params["preferences"] = event.get("preferences") or {}
    params["job_id"] = event.get("jobId")
    params["plan_key"] = event.get("planKey")
    params["role"] = event.get("role", "user")
    params["message"] = event.get("message", "")

    return action, params


def _require(params: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not params.get(name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)


async def _handle_plan_trip(params: dict[str, Any]) -> dict[str, Any]:
    service = PlanningService(orchestrator=_get_orchestrator(), cache=get_cache_store())
    plan = await service.plan_trip(params["preferences"])
    return {"status": "ok", "plan": plan.model_dump(mode="json")}


async def _handle_create_job(params: dict[str, Any]) -> dict[str, Any]:
    _require(params, "user_id")
    job_id = await _get_job_queue().create_job(params["user_id"], params["preferences"])
    return {"status": "ok", "jobId": job_id}


async def _handle_job_status(params: dict[str, Any]) -> dict[str, Any]:
    _require(params, "job_id")
    record = await _get_job_queue().get_job_status(params["job_id"])
    if record is None:
        raise ResourceNotFoundError(f"Job not found: {params['job_id']}")
    return {"status": "ok", "data": record.model_dump(mode="json")}


async def _handle_user_history(params: dict[str, Any]) -> dict[str, Any]:
    _require(params, "user_id")
    history = await _get_job_queue().get_user_history(params["user_id"])
    return {"status": "ok", "data": history}


async def _handle_chat_message(params: dict[str, Any]) -> dict[str, Any]:
    _require(params, "plan_key", "message")
    service = PlanningService(orchestrator=_get_orchestrator(), cache=get_cache_store())
    entry = await service.append_chat_message(
        params["plan_key"], params["role"], params["message"]
    )
    return {"status": "ok", "data": entry}


async def _handle_chat_history(params: dict[str, Any]) -> dict[str, Any]:
    _require(params, "plan_key")
    service = PlanningService(orchestrator=_get_orchestrator(), cache=get_cache_store())
    return {"status": "ok", "data": await service.get_chat_history(params["plan_key"])}


async def _handle_health(params: dict[str, Any]) -> dict[str, Any]:
    cache_ok = await get_cache_store().test_connection()
    return {
        "status": "ok" if cache_ok else "degraded",
        "data": {
            "cache": cache_ok,
            "environment": config.system.environment,
            "missing_api_keys": config.api.missing_keys(),
            "orchestrator": _get_orchestrator().describe(),
            "jobs": _job_queue.stats() if _job_queue else None,
        },
    }


# Action handlers map
_HANDLERS = {
    "plan_trip": _handle_plan_trip,
    "create_job": _handle_create_job,
    "job_status": _handle_job_status,
    "user_history": _handle_user_history,
    "chat_message": _handle_chat_message,
    "chat_history": _handle_chat_history,
    "health": _handle_health,
}


async def async_handler(event: dict[str, Any]) -> dict[str, Any]:
    """Main async handler, for callers that keep one event loop running."""
    action, params = route_event(event)

    handler_fn = _HANDLERS.get(action)
    if not handler_fn:
        return {
            "status": "error",
            "error_type": "unknown_action",
            "error": f"Unknown action: {action}",
        }

    try:
        return await handler_fn(params)
    except Exception as e:
        error_type = error_type_for(e)
        logger.error(f"Error handling {action} ({error_type}): {e!s}")
        response: dict[str, Any] = {
            "status": "error",
            "error_type": error_type,
            "error": str(e),
        }
        if isinstance(e, ValidationError):
            response["missing_fields"] = e.missing_fields
        return response


async def _handle_once(event: dict[str, Any]) -> dict[str, Any]:
    try:
        response = await async_handler(event)
        # Queued jobs cannot outlive this invocation's loop
        if _job_queue is not None and _job_queue_loop is asyncio.get_running_loop():
            await _job_queue.join()
            await _job_queue.stop()
        return response
    finally:
        await get_cache_store().close()


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Lambda entry point (sync wrapper)."""
    return asyncio.run(_handle_once(event))
