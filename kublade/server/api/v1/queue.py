"""
Queue Endpoints.

Reports whether the background workers are consuming jobs.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from kublade.jobs.status import get_queue_status
from kublade.server.middleware.guards import JsonEnvelopeRoute, require
from kublade.server.responses import success

router = APIRouter(route_class=JsonEnvelopeRoute)


@router.get(
    "/status",
    summary="Queue Status",
    description="`inactive` when no worker answers, `paused` when no worker consumes a queue, `running` otherwise.",
    dependencies=[require("queue.view")],
)
async def queue_status() -> JSONResponse:
    status = await run_in_threadpool(get_queue_status)
    return success("Queue status retrieved", {"status": status})
