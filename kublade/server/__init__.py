"""
Kublade Server Package.

This package contains the web server implementation for Kublade.
It includes the API definition, the response envelope, guards, exception
handlers and configuration.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Configuration and constants.
    middleware: Request logging, authentication and permission guards.
    exception_handlers: Mapping of errors onto the response envelope.
    services: Shared FastAPI dependencies.
"""
