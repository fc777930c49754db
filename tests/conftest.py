"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import pytest
import tempfile
import os
from unittest.mock import Mock
from dynamo_storage.adapters.memory import InMemoryBackend
from dynamo_storage.settings import ConnectorSettings


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    # 테스트 후 파일 정리
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def options():
    """테스트용 커넥터 옵션 (camelCase)"""
    return {
        "region": "eu-central-1",
        "bufferTimeout": 10,
        "backend": "memory",
    }


@pytest.fixture
def sample_settings(options):
    """테스트용 설정"""
    return ConnectorSettings(**options)


@pytest.fixture
def memory_backend():
    """기본 테이블이 있는 메모리 백엔드"""
    return InMemoryBackend(tables=["deepstream_records"])


@pytest.fixture
def mock_dynamodb_client():
    """테스트용 boto3 DynamoDB 클라이언트"""
    client = Mock()
    client.list_tables.return_value = {"TableNames": []}
    client.get_item.return_value = {}
    client.put_item.return_value = {}
    client.delete_item.return_value = {}
    client.batch_write_item.return_value = {"UnprocessedItems": {}}
    return client


@pytest.fixture
def sample_record():
    """테스트용 레코드"""
    return {"_d": {"firstname": "Wolfram"}, "v": 10}


# pytest 설정
def pytest_collection_modifyitems(config, items):
    """테스트 아이템 수정"""
    for item in items:
        # 느린 테스트 마커 추가
        if "performance" in item.name or "stress" in item.name:
            item.add_marker(pytest.mark.slow)

        # 통합 테스트 마커 추가
        if "integration" in item.name:
            item.add_marker(pytest.mark.integration)
