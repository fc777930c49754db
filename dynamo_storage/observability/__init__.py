"""
Observability helpers: loguru logging setup and Prometheus metrics.
"""

from .logging_setup import setup_logging_dev, route_stdlib_logging, get_logger

__all__ = ["setup_logging_dev", "route_stdlib_logging", "get_logger"]
