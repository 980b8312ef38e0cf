"""
Job dispatch primitives.

``dispatch`` enqueues a task onto a named queue with descriptive tags.
``dispatch_unique`` additionally holds a Redis lock named after the task's
``unique_id`` from the moment it is enqueued until the task returns, so that
a second dispatch while the first is pending or running is refused.

Unique tasks declare their key through the task decorator::

    @celery_app.task(bind=True, base=UniqueTask, unique_id="template-git-import")
    def git_import(self): ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import redis
from celery import Task
from celery.result import AsyncResult
from sqlalchemy.ext.asyncio import AsyncSession

from kublade.core.database.utils import create_engine, create_sessionmaker
from kublade.core.logging_config import get_logger
from kublade.core.monitoring import log_job_dispatch
from kublade.server.core.config import settings

logger = get_logger(__name__)

LOCK_PREFIX = "kublade:unique-job:"

T = TypeVar("T")


async def with_job_session(handler: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """
    Run ``handler`` with a session on an engine private to this job run.

    Each task runs its coroutine in a fresh event loop, so pooled connections
    cannot be shared between runs.
    """
    engine = create_engine(settings.database_url)
    try:
        async with create_sessionmaker(engine)() as session:
            return await handler(session)
    finally:
        await engine.dispose()


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    """Redis client shared by the unique job locks."""
    return redis.from_url(settings.queue.broker_url)


class UniqueJobLock:
    """Redis lock marking a unique job as outstanding.

    The lock expires after ``ttl_seconds`` so a crashed worker cannot block
    the job forever.
    """

    def __init__(self, unique_id: str, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None):
        self.unique_id = unique_id
        self.key = f"{LOCK_PREFIX}{unique_id}"
        self.client = client if client is not None else get_redis()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.queue.unique_job_ttl_seconds

    def acquire(self) -> bool:
        return bool(self.client.set(self.key, "1", nx=True, ex=self.ttl_seconds))

    def release(self) -> None:
        self.client.delete(self.key)

    def is_held(self) -> bool:
        return bool(self.client.exists(self.key))


class UniqueTask(Task):
    """Task base class releasing its unique lock once the task has returned."""

    abstract = True
    unique_id: Optional[str] = None

    def after_return(self, status, retval, task_id, args, kwargs, einfo) -> None:
        if self.unique_id:
            UniqueJobLock(self.unique_id).release()
            logger.debug(f"Released unique lock {self.unique_id} after task {task_id} ended with {status}")
        super().after_return(status, retval, task_id, args, kwargs, einfo)


def dispatch(
    task: Task,
    queue: str,
    kwargs: Optional[dict[str, Any]] = None,
    tags: Iterable[str] = (),
) -> AsyncResult:
    """Enqueue ``task`` onto ``queue``; ``tags`` travel in the message headers."""
    result = task.apply_async(kwargs=kwargs or {}, queue=queue, headers={"tags": list(tags)})
    logger.debug(f"Dispatched {task.name} onto {queue}")
    log_job_dispatch(task.name, queue)
    return result


def dispatch_unique(
    task: Task,
    queue: str,
    kwargs: Optional[dict[str, Any]] = None,
    tags: Iterable[str] = (),
    client: Optional[redis.Redis] = None,
) -> Optional[AsyncResult]:
    """
    Enqueue a unique task unless an instance is already outstanding.

    Args:
        task: Task declaring a ``unique_id``
        queue: Queue to enqueue onto
        kwargs: Task keyword arguments
        tags: Descriptive tags for observability
        client: Redis client holding the lock, defaults to the broker's

    Returns:
        The enqueued task's result handle, or None when the dispatch was refused
    """
    unique_id = getattr(task, "unique_id", None)
    if not unique_id:
        raise ValueError(f"Task {task.name} does not declare a unique_id")

    lock = UniqueJobLock(unique_id, client=client)
    if not lock.acquire():
        logger.info(f"Skipped dispatch of {task.name}: unique job {unique_id} is outstanding")
        log_job_dispatch(task.name, queue, unique_id=unique_id, dispatched=False)
        return None

    try:
        result = task.apply_async(kwargs=kwargs or {}, queue=queue, headers={"tags": list(tags)})
    except Exception:
        lock.release()
        raise

    logger.info(f"Dispatched unique job {unique_id} onto {queue}")
    log_job_dispatch(task.name, queue, unique_id=unique_id)
    return result
