"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS,
request logging), registers the exception handlers and includes all API
routers. It serves as the root of the web server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kublade.core.database import init_db
from kublade.core.logging_config import get_logger, setup_logging
from kublade.core.monitoring import initialize_logfire

from .api.v1 import auth, health, projects, queue, roles, templates, users
from .core import constant
from .core.config import settings
from .exception_handlers import setup_exception_handlers
from .middleware import RequestLoggingMiddleware
from .openapi import install_openapi

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Handles startup and shutdown events for the FastAPI application.
    """
    # Startup
    try:
        logger.info("Starting up Kublade API...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    # Shutdown
    logger.info("Shutting down Kublade API...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    Kublade API

    Administration of users, roles, projects and deployment templates. Templates
    can be sourced from git repositories that background workers keep in sync.
    """,
    version=constant.API_VERSION,
    openapi_url=f"{constant.API_DOCS_PREFIX}/openapi.json",
    docs_url=constant.API_DOCS_PREFIX,
    redoc_url=f"{constant.API_DOCS_PREFIX}/redoc",
    lifespan=lifespan,
)

cors = settings.cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors.origins,
    allow_credentials=cors.allow_credentials,
    allow_methods=cors.allow_methods,
    allow_headers=cors.allow_headers,
)
app.add_middleware(RequestLoggingMiddleware)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(auth.router, prefix=f"{constant.API_PREFIX}/auth", tags=["auth"])
app.include_router(projects.router, prefix=f"{constant.API_PREFIX}/projects", tags=["projects"])
app.include_router(templates.router, prefix=f"{constant.API_PREFIX}/templates", tags=["templates"])
app.include_router(users.router, prefix=f"{constant.API_PREFIX}/users", tags=["users"])
app.include_router(roles.router, prefix=f"{constant.API_PREFIX}/roles", tags=["roles"])
app.include_router(roles.permissions_router, prefix=f"{constant.API_PREFIX}/permissions", tags=["roles"])
app.include_router(queue.router, prefix=f"{constant.API_PREFIX}/queue", tags=["queue"])

install_openapi(app)
