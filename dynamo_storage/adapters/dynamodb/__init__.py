"""
DynamoDB adapter for the storage connector.
"""

from .client import DynamoDBBackend, create_client

__all__ = ["DynamoDBBackend", "create_client"]
