"""
Port interfaces for the storage connector.

This module defines the port interfaces (Protocols) that define
the contracts between the connector and its backend adapters.
"""

from .backend import StorageBackendPort
from .storage import StoragePort

__all__ = ["StorageBackendPort", "StoragePort"]
