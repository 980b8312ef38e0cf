"""
Health Check Endpoints.

This module provides basic system status endpoints (health, version)
used for monitoring and deployment verification.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from kublade import __version__
from kublade.server.core import constant
from kublade.server.middleware.guards import JsonEnvelopeRoute
from kublade.server.responses import success

router = APIRouter(route_class=JsonEnvelopeRoute)


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object.",
)
async def health_check() -> JSONResponse:
    """
    Health check endpoint.

    Returns a simple status indicator to confirm the server is running and reachable.
    """
    return success("Healthy", {"status": "ok"})


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the API server.",
    response_description="Version object.",
)
async def version() -> JSONResponse:
    """
    Get API version.

    Returns the package version and the version of the documented API.
    """
    return success("Version retrieved", {"version": __version__, "api_version": constant.API_VERSION})
