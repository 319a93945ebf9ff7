import logging
import os

from redis import Redis
from rq import Queue

from db.models import AutomationJob, JOB_TYPES
from db.storage import Storage
from pipeline.tasks import execute_job, fail_job, rq_on_failure

logger = logging.getLogger(__name__)


def _redis_url() -> str:
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def _queue_name() -> str:
    return os.getenv("RQ_QUEUE", "default")


def _timeout_seconds() -> int:
    return int(os.getenv("RQ_JOB_TIMEOUT", "3600"))


def get_redis() -> Redis:
    return Redis.from_url(_redis_url())


def get_queue(name: str | None = None) -> Queue:
    return Queue(name or _queue_name(), connection=get_redis())


def enqueue_job(job_id: int) -> str:
    rq_job = get_queue().enqueue(
        execute_job,
        job_id,
        job_timeout=_timeout_seconds(),
        on_failure=rq_on_failure,
    )
    return rq_job.id


def submit_job(
    job_type: str,
    payload: dict | None = None,
    video_id: int | None = None,
    storage: Storage | None = None,
) -> AutomationJob:
    """Create the AutomationJob row and hand it to the worker queue.

    If the queue is unreachable the row is marked failed and the error
    propagates to the caller.
    """
    if job_type not in JOB_TYPES:
        raise ValueError(f"Unknown job type: {job_type}")
    storage = storage or Storage()
    job = storage.create_automation_job(type=job_type, payload=payload or {}, video_id=video_id)
    try:
        rq_id = enqueue_job(job.id)
    except Exception as exc:
        fail_job(storage, job.id, f"enqueue failed: {exc}")
        raise
    logger.info("Queued %s job %s as %s", job_type, job.id, rq_id)
    return job
