"""
Services built on the orchestrator: the cache store, the synchronous
planning path and the background job queue.
"""

from travel_orchestrator.services.cache_service import (
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
    get_cache_store,
)
from travel_orchestrator.services.job_queue import JobQueue
from travel_orchestrator.services.plan_service import PlanningService, build_plan_result

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "JobQueue",
    "PlanningService",
    "RedisCacheStore",
    "build_plan_result",
    "get_cache_store",
]
