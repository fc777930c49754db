"""
Local storage adapters for the storage connector.

This module contains file-backed backends for development and
single-host deployments.
"""

from .sqlite_backend import SQLiteBackend

__all__ = ["SQLiteBackend"]
