"""
Adapters for the storage connector.

This module contains the concrete implementations of the backend port
that handle external I/O and infrastructure concerns.
"""

from .memory import InMemoryBackend
from .storage import SQLiteBackend
from .dynamodb import DynamoDBBackend
from .factory import create_backend

__all__ = ["InMemoryBackend", "SQLiteBackend", "DynamoDBBackend", "create_backend"]
