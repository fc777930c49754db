"""
DynamoDB cache/storage connector.

Adapts a generic asynchronous key/value and table-lifecycle interface onto
Amazon DynamoDB, with SQLite and in-memory backends for local use.
"""

__version__ = "1.0.0"

from .core.errors import (
    StorageError, ConfigurationError, InvalidTableNameError, InvalidKeyError, InvalidValueError,
    BackendError, TableExistsError, TableNotFoundError, ConnectorClosedError,
)
from .settings import ConnectorSettings, build_settings, load_settings_from_env
from .connector import StorageConnector

__all__ = [
    "__version__",
    "StorageConnector",
    "ConnectorSettings", "build_settings", "load_settings_from_env",
    "StorageError", "ConfigurationError", "InvalidTableNameError", "InvalidKeyError",
    "InvalidValueError", "BackendError", "TableExistsError", "TableNotFoundError",
    "ConnectorClosedError",
]
