"""Tests for background planning jobs."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fakes import RaisingStage

from travel_orchestrator.config import JobConfig
from travel_orchestrator.data.models import JobRecord, JobStatus
from travel_orchestrator.orchestration.core.stage_registry import StageRegistry
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.orchestration.states.stages import StageId
from travel_orchestrator.services import cache_keys
from travel_orchestrator.services.cache_service import DEFAULT_TTL, InMemoryCacheStore
from travel_orchestrator.services.job_queue import JobQueue, QueuedJob
from travel_orchestrator.utils.error_handling import (
    CacheUnavailableError,
    DependencyUnavailableError,
    JobStateError,
    ValidationError,
)


class RecordingCache:
    """Wraps a cache store and remembers every job record written."""

    def __init__(self, inner):
        self.inner = inner
        self.job_writes: list[JobRecord] = []

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def set(self, key, value, ttl=None):
        if key.startswith("job:"):
            self.job_writes.append(JobRecord.model_validate(value.model_dump()))
        await self.inner.set(key, value, ttl)


@pytest.fixture
def queue(orchestrator, cache, job_config, fake_sleep):
    return JobQueue(
        orchestrator=orchestrator, cache=cache, job_config=job_config, sleep=fake_sleep
    )


async def test_create_job_persists_waiting_record(queue, cache, seoul_preferences):
    job_id = await queue.create_job("user-1", seoul_preferences)

    assert job_id.startswith("travel_")
    record = await queue.get_job_status(job_id)
    assert record.status is JobStatus.WAITING
    assert record.progress == 0
    assert await cache.exists(cache_keys.job(job_id))


async def test_identical_submissions_get_distinct_ids(queue, seoul_preferences):
    first = await queue.create_job("user-1", seoul_preferences)
    second = await queue.create_job("user-1", seoul_preferences)

    assert first != second


async def test_invalid_preferences_are_rejected(queue, cache):
    with pytest.raises(ValidationError) as exc_info:
        await queue.create_job("user-1", {"destination": "Seoul"})

    assert "start_date" in exc_info.value.missing_fields
    assert queue.stats()["waiting"] == 0


async def test_unreachable_cache_refuses_job(orchestrator, cache, job_config, seoul_preferences):
    cache.test_connection = AsyncMock(return_value=False)
    cache.set = AsyncMock()
    queue = JobQueue(orchestrator=orchestrator, cache=cache, job_config=job_config)

    with pytest.raises(DependencyUnavailableError):
        await queue.create_job("user-1", seoul_preferences)

    cache.set.assert_not_awaited()
    assert queue.stats() == {"waiting": 0, "active": 0, "completed": 0, "failed": 0}


async def test_worker_completes_job(queue, cache, seoul_preferences):
    queue.start()
    try:
        job_id = await queue.create_job("user-1", seoul_preferences)
        await queue.join()
    finally:
        await queue.stop()

    record = await queue.get_job_status(job_id)
    assert record.status is JobStatus.COMPLETED
    assert record.progress == 100
    assert record.attempts == 1
    assert record.result["success"] is True
    assert record.result["orchestration"]["steps"] == 3
    assert record.result["itinerary"]["schedule"]

    plan = await cache.get(cache_keys.travel_plan(job_id))
    assert plan == record.result


async def test_progress_and_status_are_monotonic(orchestrator, cache, job_config, seoul_preferences):
    recording = RecordingCache(cache)
    queue = JobQueue(orchestrator=orchestrator, cache=recording, job_config=job_config)
    job_id = await queue.create_job("user-1", seoul_preferences)

    await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    progress = [record.progress for record in recording.job_writes]
    statuses = [record.status for record in recording.job_writes]
    assert progress == [0, 10, 30, 80, 100]
    assert progress == sorted(progress)
    assert statuses[0] is JobStatus.WAITING
    assert statuses[-1] is JobStatus.COMPLETED
    assert set(statuses[1:-1]) == {JobStatus.ACTIVE}


async def test_history_records_completed_plans(queue, seoul_preferences):
    queue.start()
    try:
        first = await queue.create_job("user-1", seoul_preferences)
        second = await queue.create_job("user-1", seoul_preferences)
        await queue.join()
    finally:
        await queue.stop()

    history = await queue.get_user_history("user-1")
    assert [entry["id"] for entry in history] == [second, first]
    assert history[0]["preferences"]["destination"] == "Seoul"
    assert history[0]["preferences"]["startDate"] == "2025-06-01"
    assert history[0]["result"]["success"] is True
    assert "created_at" in history[0]
    assert await queue.get_user_history("someone-else") == []


async def test_failing_job_retries_then_fails(
    cache, job_config, invoker, settings, seoul_preferences, fake_sleep, recorded_sleeps
):
    stage = RaisingStage()
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: stage}),
        invoker=invoker,
        settings=settings,
    )
    queue = JobQueue(
        orchestrator=orchestrator, cache=cache, job_config=job_config, sleep=fake_sleep
    )
    job_id = await queue.create_job("user-1", seoul_preferences)

    record = await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    assert stage.calls == 3
    assert recorded_sleeps == [2, 4]
    assert record.status is JobStatus.FAILED
    assert record.attempts == 3
    assert "stage exploded" in record.error
    # Progress reached before the failure is kept
    assert record.progress == 30
    assert record.result is None

    stored = await queue.get_job_status(job_id)
    assert stored.status is JobStatus.FAILED
    assert await queue.get_user_history("user-1") == []
    assert queue.stats()["failed"] == 1


async def test_backoff_follows_configuration(
    cache, invoker, settings, seoul_preferences, fake_sleep, recorded_sleeps
):
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: RaisingStage()}),
        invoker=invoker,
        settings=settings,
    )
    queue = JobQueue(
        orchestrator=orchestrator,
        cache=cache,
        job_config=JobConfig(attempts=4, backoff_ms=500),
        sleep=fake_sleep,
    )
    job_id = await queue.create_job("user-1", seoul_preferences)

    await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    assert recorded_sleeps == [0.5, 1, 2]


async def test_terminal_jobs_cannot_be_reprocessed(queue, seoul_preferences):
    job_id = await queue.create_job("user-1", seoul_preferences)
    job = QueuedJob(job_id, "user-1", seoul_preferences)
    await queue.process(job)

    with pytest.raises(JobStateError):
        await queue.process(job)

    record = await queue.get_job_status(job_id)
    assert record.status is JobStatus.COMPLETED


async def test_unknown_job_status(queue):
    assert await queue.get_job_status("travel_0_missing") is None


async def test_stats_count_statuses(queue, seoul_preferences):
    job_id = await queue.create_job("user-1", seoul_preferences)
    await queue.create_job("user-1", seoul_preferences)
    await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    assert queue.stats() == {"waiting": 1, "active": 0, "completed": 1, "failed": 0}


async def test_job_record_expires_with_cache_ttl(orchestrator, job_config, seoul_preferences):
    now = [0.0]
    cache = InMemoryCacheStore(clock=lambda: now[0])
    queue = JobQueue(orchestrator=orchestrator, cache=cache, job_config=job_config)
    job_id = await queue.create_job("user-1", seoul_preferences)
    await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    now[0] = DEFAULT_TTL + 1

    assert await queue.get_job_status(job_id) is None
    assert queue.stats()["completed"] == 1


async def test_unwritable_job_is_not_created(queue, cache, seoul_preferences):
    cache.set = AsyncMock(side_effect=CacheUnavailableError("write failed"))

    with pytest.raises(CacheUnavailableError):
        await queue.create_job("user-1", seoul_preferences)

    assert queue.stats() == {"waiting": 0, "active": 0, "completed": 0, "failed": 0}
    await asyncio.wait_for(queue.join(), timeout=1)


async def test_failure_is_counted_when_record_write_fails(
    cache, job_config, invoker, settings, seoul_preferences, fake_sleep, monkeypatch
):
    orchestrator = Orchestrator(
        registry=StageRegistry({StageId.SELECTION: RaisingStage()}),
        invoker=invoker,
        settings=settings,
    )
    queue = JobQueue(
        orchestrator=orchestrator, cache=cache, job_config=job_config, sleep=fake_sleep
    )
    job_id = await queue.create_job("user-1", seoul_preferences)
    write = cache.set

    async def refuse_failed_records(key, value, ttl=None):
        if key.startswith("job:") and value.status is JobStatus.FAILED:
            raise CacheUnavailableError("write failed")
        await write(key, value, ttl)

    monkeypatch.setattr(cache, "set", refuse_failed_records)

    record = await queue.process(QueuedJob(job_id, "user-1", seoul_preferences))

    assert record.status is JobStatus.FAILED
    assert queue.stats() == {"waiting": 0, "active": 0, "completed": 0, "failed": 1}
    # The last written record stays until its TTL runs out
    stored = await queue.get_job_status(job_id)
    assert stored.status is JobStatus.ACTIVE
