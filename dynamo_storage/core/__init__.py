"""
Core of the storage connector: error taxonomy, value codec, key resolution,
events and write buffering. Free of backend driver imports.
"""

from .errors import StorageError, ConfigurationError, BackendError, TableExistsError, TableNotFoundError
from .events import EventEmitter
from .models import WriteRequest

__all__ = [
    "StorageError", "ConfigurationError", "BackendError", "TableExistsError", "TableNotFoundError",
    "EventEmitter", "WriteRequest",
]
