"""
Template git import dispatcher.

The dispatcher is a unique job: while one instance is pending or running, a
second dispatch is refused, so concurrent triggers collapse to one pass over
the templates table.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from celery.result import AsyncResult
from sqlalchemy.ext.asyncio import AsyncSession

from kublade.core.database.repositories import TemplateRepository
from kublade.core.logging_config import get_logger
from kublade.jobs.base import UniqueTask, dispatch_unique, with_job_session
from kublade.jobs.celery_app import celery_app
from kublade.jobs.template.actions import dispatch_git_import

logger = get_logger(__name__)

DISPATCHER_QUEUE = "dispatchers"
GIT_IMPORT_UNIQUE_ID = "template-git-import"
GIT_IMPORT_TAGS = [
    "job",
    "job:template",
    "job:template:dispatcher",
    "job:template:dispatcher:GitImport",
]


async def dispatch_template_imports(session: AsyncSession) -> List[str]:
    """Enqueue one git import action per template onto the dispatcher queue."""
    template_ids = await TemplateRepository(session).all_ids()
    for template_id in template_ids:
        dispatch_git_import(template_id, DISPATCHER_QUEUE)
    return template_ids


@celery_app.task(
    bind=True,
    base=UniqueTask,
    name="kublade.jobs.template.dispatchers.git_import",
    unique_id=GIT_IMPORT_UNIQUE_ID,
    acks_late=True,
)
def git_import(self) -> int:
    """Dispatch the git import of every template."""
    template_ids = asyncio.run(with_job_session(dispatch_template_imports))
    logger.info(f"Dispatched git import for {len(template_ids)} templates (task {self.request.id})")
    return len(template_ids)


def dispatch_git_import_dispatcher() -> Optional[AsyncResult]:
    """Enqueue the dispatcher unless one is already outstanding."""
    return dispatch_unique(git_import, DISPATCHER_QUEUE, tags=GIT_IMPORT_TAGS)


@celery_app.task(name="kublade.jobs.template.dispatchers.schedule_git_import")
def schedule_git_import() -> bool:
    """Periodic trigger for the dispatcher."""
    return dispatch_git_import_dispatcher() is not None
