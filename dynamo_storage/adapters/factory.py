"""
Backend factory.

Builds the backend adapter named by the connector settings. The connector
depends only on the backend port, so hosts and tests can inject their own.
"""

from dynamo_storage.ports.backend import StorageBackendPort
from dynamo_storage.settings import ConnectorSettings


def create_backend(settings: ConnectorSettings) -> StorageBackendPort:
    """
    설정에 맞는 백엔드 어댑터를 생성합니다.

    Args:
        settings: 커넥터 설정

    Returns:
        StorageBackendPort 구현체

    Raises:
        ConfigurationError: 백엔드 클라이언트를 만들 수 없는 경우
    """
    if settings.backend == "memory":
        from dynamo_storage.adapters.memory import InMemoryBackend
        return InMemoryBackend()

    if settings.backend == "sqlite":
        from dynamo_storage.adapters.storage.sqlite_backend import SQLiteBackend
        return SQLiteBackend(settings.sqlite_path)

    from dynamo_storage.adapters.dynamodb.client import DynamoDBBackend
    return DynamoDBBackend(settings)
