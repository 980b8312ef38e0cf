"""
Core utilities and configuration for Kublade.

This package provides core functionality including logging configuration,
permission handling, security helpers and the database layer.
"""

from kublade.core.logging_config import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
