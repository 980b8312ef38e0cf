"""Kublade.

Kublade is the API backend for managing Kubernetes deployment templates.
It lets operators administer users, roles, projects and templates, and keeps
template contents in sync with the git repositories they are sourced from.

Core subpackages
----------------

- ``kublade.core``: logging, monitoring, permissions, security helpers and the
  database layer (entities and repositories).
- ``kublade.server``: the FastAPI application, response envelope, guards,
  exception handlers and API routers.
- ``kublade.jobs``: the Celery application, unique job locking and the
  template git-import dispatcher and action jobs.
"""

__version__ = "0.1.0"
