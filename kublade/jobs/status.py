"""Queue worker status."""

from __future__ import annotations

from typing import Optional

from celery import Celery

from kublade.core.logging_config import get_logger

logger = get_logger(__name__)

INACTIVE = "inactive"
PAUSED = "paused"
RUNNING = "running"


def get_queue_status(app: Optional[Celery] = None, timeout: float = 1.0) -> str:
    """
    Report whether workers are consuming jobs.

    Returns:
        ``inactive`` when no worker answers, ``paused`` when every worker
        answers but consumes no queue, ``running`` otherwise
    """
    if app is None:
        from kublade.jobs.celery_app import celery_app as app

    try:
        active_queues = app.control.inspect(timeout=timeout).active_queues()
    except Exception as e:
        logger.warning(f"Could not inspect queue workers: {e}")
        return INACTIVE

    if not active_queues:
        return INACTIVE
    if all(not queues for queues in active_queues.values()):
        return PAUSED
    return RUNNING
