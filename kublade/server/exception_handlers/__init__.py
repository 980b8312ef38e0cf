"""
Exception handlers for the Kublade server.

This package contains the handlers mapping errors onto the response envelope
and a setup function to register them with the FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
