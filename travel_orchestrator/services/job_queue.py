"""
Background planning jobs.

Jobs are persisted in the cache store as ``job:<id>`` records and executed
by worker tasks draining an ``asyncio.Queue``. The cache is the only
source of truth for lookups, so a record expires with its TTL; locally the
queue keeps just the records of in-flight jobs and a count of finished
ones. Each attempt reruns the whole unit (check cache, run orchestrator,
store plan, append history); failed attempts are retried with exponential
backoff through tenacity and the record becomes ``failed`` only once the
attempts are exhausted.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any, NamedTuple

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from travel_orchestrator.config import JobConfig, config
from travel_orchestrator.data.models import (
    JobRecord,
    JobStatus,
    TripPreferences,
    validate_preferences,
)
from travel_orchestrator.orchestration.orchestrator import Orchestrator
from travel_orchestrator.services import cache_keys
from travel_orchestrator.services.cache_service import CacheStore, get_cache_store
from travel_orchestrator.services.plan_service import build_plan_result
from travel_orchestrator.utils.error_handling import (
    CacheUnavailableError,
    DependencyUnavailableError,
    JobStateError,
)
from travel_orchestrator.utils.helpers import generate_job_id, utc_now
from travel_orchestrator.utils.logging import get_logger

logger = get_logger(__name__)

SleepFunction = Callable[[float], Awaitable[Any]]

PROGRESS_SETUP = 10
PROGRESS_CACHE_READY = 30
PROGRESS_PLANNED = 80
PROGRESS_DONE = 100


class QueuedJob(NamedTuple):
    job_id: str
    owner_id: str
    preferences: TripPreferences


class JobQueue:
    """
    In-process job queue with retrying workers.

    Args:
        orchestrator: Pipeline runner (defaults to the production stages)
        cache: Store for job records, plans and history
        job_config: Attempts, backoff and worker count
        sleep: Awaitable used between attempts, injectable for tests
    """

    def __init__(
        self,
        orchestrator: Orchestrator | None = None,
        cache: CacheStore | None = None,
        job_config: JobConfig | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ):
        self.orchestrator = orchestrator or Orchestrator()
        self.cache = cache or get_cache_store()
        self.job_config = job_config or config.jobs
        self._sleep = sleep
        self._queue: asyncio.Queue[QueuedJob] = asyncio.Queue()
        self._in_flight: dict[str, JobRecord] = {}
        self._finished: Counter[JobStatus] = Counter()
        self._workers: list[asyncio.Task] = []

    # Submission and lookup

    async def create_job(
        self, owner_id: str, preferences: TripPreferences | dict[str, Any]
    ) -> str:
        """
        Persist a waiting job and enqueue it.

        Raises:
            ValidationError: If the preferences are invalid
            DependencyUnavailableError: If the cache store is unreachable
            CacheUnavailableError: If the waiting record cannot be written
        """
        preferences = validate_preferences(preferences)
        if not await self.cache.test_connection():
            raise DependencyUnavailableError("Cache store is unreachable, job not created")

        job_id = generate_job_id()
        record = JobRecord(id=job_id)
        await self._persist(record)
        await self._queue.put(QueuedJob(job_id, owner_id, preferences))
        logger.info(f"Queued job {job_id} for {owner_id} ({preferences.destination})")
        return job_id

    async def get_job_status(self, job_id: str) -> JobRecord | None:
        """Current record of a job, or None when unknown or expired."""
        data = await self.cache.get(cache_keys.job(job_id))
        if data is None:
            return None
        try:
            return JobRecord.model_validate(data)
        except ValueError as e:
            logger.warning(f"Ignoring malformed job record {job_id}: {e!s}")
            return None

    async def get_user_history(self, owner_id: str) -> list[Any]:
        """Completed plans of an owner, newest first."""
        return await self.cache.get_list(cache_keys.user_history(owner_id))

    def stats(self) -> dict[str, int]:
        counts = Counter(record.status for record in self._in_flight.values())
        counts.update(self._finished)
        return {status.value: counts.get(status, 0) for status in JobStatus}

    # Worker lifecycle

    def start(self) -> None:
        """Start the worker tasks. Must be called inside a running loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"job-worker-{index}")
            for index in range(self.job_config.concurrency)
        ]
        logger.info(f"Started {len(self._workers)} job worker(s)")

    async def stop(self) -> None:
        """Cancel the workers; queued jobs stay queued."""
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Job workers stopped")

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process(job)
            except Exception as e:
                logger.exception(f"Worker {index} could not finish job {job.job_id}: {e!s}")
            finally:
                self._queue.task_done()

    # Execution

    async def process(self, job: QueuedJob) -> JobRecord:
        """Run a job through its attempts and record the outcome."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.job_config.attempts),
            wait=wait_exponential(multiplier=self.job_config.backoff_ms / 1000),
            retry=retry_if_not_exception_type(JobStateError),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return await retrying(self._run_attempt, job)
        except JobStateError:
            self._in_flight.pop(job.job_id, None)
            raise
        except Exception as e:
            logger.error(f"Job {job.job_id} failed after all attempts: {e!s}")
            return await self._fail(job.job_id, str(e))

    async def _run_attempt(self, job: QueuedJob) -> JobRecord:
        job_id = job.job_id
        started = await self._transition(
            job_id, JobStatus.ACTIVE, PROGRESS_SETUP, new_attempt=True
        )
        attempt = started.attempts

        if not await self.cache.test_connection():
            raise CacheUnavailableError("Cache store is unreachable")
        await self._transition(job_id, JobStatus.ACTIVE, PROGRESS_CACHE_READY)

        state = await self.orchestrator.execute(job.preferences)
        result = build_plan_result(state)
        await self._transition(job_id, JobStatus.ACTIVE, PROGRESS_PLANNED)

        payload = result.model_dump(mode="json")
        await self.cache.set(cache_keys.travel_plan(job_id), payload)
        await self.cache.push_to_list(
            cache_keys.user_history(job.owner_id),
            {
                "id": job_id,
                "preferences": job.preferences.to_wire(),
                "result": payload,
                "created_at": utc_now().isoformat(),
            },
        )

        record = await self._transition(
            job_id, JobStatus.COMPLETED, PROGRESS_DONE, result=payload
        )
        logger.info(f"Job {job_id} completed on attempt {attempt}")
        return record

    async def _fail(self, job_id: str, error: str) -> JobRecord:
        current = await self._current(job_id)
        record = self._next_record(current, JobStatus.FAILED, current.progress, error=error)
        try:
            await self._persist(record)
        except CacheUnavailableError as e:
            # The stale cache record expires with its TTL
            logger.error(f"Could not persist failure of job {job_id}: {e!s}")
            self._settle(record)
        return record

    def _log_retry(self, retry_state: RetryCallState) -> None:
        job: QueuedJob = retry_state.args[0]
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"Job {job.job_id} attempt {retry_state.attempt_number} failed: {exc!s}; "
            f"retrying in {wait:.1f}s"
        )

    # Records

    async def _transition(
        self,
        job_id: str,
        status: JobStatus,
        progress: int,
        new_attempt: bool = False,
        **fields: Any,
    ) -> JobRecord:
        current = await self._current(job_id)
        if current.status.is_terminal:
            raise JobStateError(
                f"Job {job_id} is {current.status.value} and cannot become {status.value}"
            )

        record = self._next_record(current, status, progress, new_attempt, **fields)
        await self._persist(record)
        return record

    async def _current(self, job_id: str) -> JobRecord:
        current = self._in_flight.get(job_id) or await self.get_job_status(job_id)
        if current is None:
            raise JobStateError(f"Unknown job: {job_id}")
        return current

    @staticmethod
    def _next_record(
        current: JobRecord,
        status: JobStatus,
        progress: int,
        new_attempt: bool = False,
        **fields: Any,
    ) -> JobRecord:
        # Validated rebuild keeps outcome fields consistent with the status
        return JobRecord.model_validate(
            {
                **current.model_dump(),
                "status": status,
                "progress": max(current.progress, min(progress, PROGRESS_DONE)),
                "attempts": current.attempts + 1 if new_attempt else current.attempts,
                "updated_at": utc_now(),
                **fields,
            }
        )

    async def _persist(self, record: JobRecord) -> None:
        """Write the record to the cache, then track it locally."""
        await self.cache.set(cache_keys.job(record.id), record)
        self._settle(record)
        logger.debug(f"Job {record.id}: {record.status.value} {record.progress}%")

    def _settle(self, record: JobRecord) -> None:
        if record.status.is_terminal:
            self._in_flight.pop(record.id, None)
            self._finished[record.status] += 1
        else:
            self._in_flight[record.id] = record
