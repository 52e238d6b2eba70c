"""
Job queue abstraction over Celery.

The adaptation engine records the id of an in-flight recalculation job on
the plan and asks the queue for its state before starting another one.

Celery reports PENDING both for queued tasks and for ids it has never
seen, so every enqueued id is also remembered in Redis for
JOB_TRACKING_TTL_S. PENDING without that marker is reported as UNKNOWN,
which callers treat as "not in flight".
"""

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from core.cache import cache_key, get_redis_client
from core.config import settings

logger = logging.getLogger(__name__)

JOB_KEY_PREFIX = "plan_job"


class JobState(str, Enum):
    ENQUEUED = "enqueued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @property
    def in_flight(self) -> bool:
        return self in (JobState.ENQUEUED, JobState.PROCESSING)


class JobQueue(Protocol):
    def enqueue(self, task, *args, **kwargs) -> str:
        ...

    def get_state(self, job_id: str) -> JobState:
        ...


class CeleryJobQueue:
    """JobQueue backed by the Celery app in `tasks`."""

    def __init__(self, celery_app=None):
        if celery_app is None:
            from tasks import celery_app as default_app
            celery_app = default_app
        self.celery_app = celery_app

    def enqueue(self, task, *args, **kwargs) -> str:
        result = task.delay(*args, **kwargs)

        redis = get_redis_client()
        if redis:
            meta = json.dumps({
                "task": task.name,
                "args": [str(a) for a in args],
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
            redis.setex(cache_key(JOB_KEY_PREFIX, result.id), settings.JOB_TRACKING_TTL_S, meta)

        logger.info(f"Enqueued {task.name} as job {result.id}")
        return result.id

    def get_state(self, job_id: str) -> JobState:
        task = self.celery_app.AsyncResult(job_id)
        redis = get_redis_client()
        key = cache_key(JOB_KEY_PREFIX, job_id)

        celery_state = task.state
        if celery_state == "PENDING":
            known = bool(redis and redis.get(key) is not None)
            return JobState.ENQUEUED if known else JobState.UNKNOWN
        if celery_state in ("STARTED", "RETRY", "RECEIVED"):
            return JobState.PROCESSING
        if celery_state == "SUCCESS":
            if redis:
                redis.delete(key)
            return JobState.SUCCEEDED
        if celery_state in ("FAILURE", "REVOKED"):
            if redis:
                redis.delete(key)
            return JobState.FAILED

        logger.warning(f"Unrecognized Celery state {celery_state} for job {job_id}")
        return JobState.UNKNOWN
