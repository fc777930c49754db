# dynamo_storage/settings.py
from __future__ import annotations
import os
from collections.abc import Mapping
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from dynamo_storage.core.errors import ConfigurationError
from dynamo_storage.core.keys import TABLE_NAME_PATTERN

REGION_PATTERN = r"^[a-z]{2}(-gov|-iso[a-z]*)?-[a-z]+-\d+$"

class ConnectorSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    # 필수
    region: str = Field(pattern=REGION_PATTERN)
    buffer_timeout: int = Field(alias="bufferTimeout", ge=0)  # ms, 0이면 다음 루프 틱에 flush

    # 키/테이블
    table: str = "deepstream_records"
    split_char: str | None = Field(default=None, alias="splitChar", min_length=1, max_length=1)
    key_attribute: str = Field(default="ds_key", alias="keyAttribute", min_length=1)
    value_attribute: str = Field(default="ds_value", alias="valueAttribute", min_length=1)

    # 백엔드
    backend: Literal["dynamodb", "sqlite", "memory"] = "dynamodb"
    endpoint_url: str | None = Field(default=None, alias="endpointUrl")
    aws_access_key_id: str | None = Field(default=None, alias="accessKeyId")
    aws_secret_access_key: str | None = Field(default=None, alias="secretAccessKey")
    aws_session_token: str | None = Field(default=None, alias="sessionToken")
    profile: str | None = None
    sqlite_path: str = Field(default="/data/storage.db", alias="sqlitePath")

    # 테이블 프로비저닝
    read_capacity: int | None = Field(default=None, alias="readCapacity", ge=1)
    write_capacity: int | None = Field(default=None, alias="writeCapacity", ge=1)
    auto_create_table: bool = Field(default=True, alias="autoCreateTable")
    table_wait_timeout: float = Field(default=120.0, alias="tableWaitTimeout", gt=0)

    # 읽기/쓰기 동작
    consistent_read: bool = Field(default=True, alias="consistentRead")
    max_batch_size: int = Field(default=25, alias="maxBatchSize", ge=1, le=25)
    max_batch_retries: int = Field(default=5, alias="maxBatchRetries", ge=0)
    backoff_initial_sec: float = Field(default=0.05, alias="backoffInitialSec", gt=0)
    backoff_max_sec: float = Field(default=2.0, alias="backoffMaxSec", gt=0)

    # 전송/연결
    health_check_interval: float = Field(default=0.0, alias="healthCheckInterval", ge=0)  # 0이면 비활성
    max_pool_connections: int = Field(default=50, alias="maxPoolConnections", ge=1)
    connect_timeout: float = Field(default=5.0, alias="connectTimeout", gt=0)
    read_timeout: float = Field(default=10.0, alias="readTimeout", gt=0)

    @field_validator("table")
    @classmethod
    def _table_name(cls, v: str) -> str:
        if not TABLE_NAME_PATTERN.match(v):
            raise ValueError("expected 3-255 characters from [A-Za-z0-9_.-]")
        return v

    @model_validator(mode="after")
    def _pairs(self) -> "ConnectorSettings":
        if (self.aws_access_key_id is None) != (self.aws_secret_access_key is None):
            raise ValueError("aws_access_key_id and aws_secret_access_key must be given together")
        if (self.read_capacity is None) != (self.write_capacity is None):
            raise ValueError("read_capacity and write_capacity must be given together")
        if self.backoff_initial_sec > self.backoff_max_sec:
            raise ValueError("backoff_initial_sec must not exceed backoff_max_sec")
        return self

    @property
    def provisioned(self) -> bool:
        return self.read_capacity is not None


def build_settings(options: Any) -> ConnectorSettings:
    """
    생성자 옵션을 검증된 설정으로 변환합니다.

    Args:
        options: ConnectorSettings 또는 매핑 (camelCase 키 허용)

    Raises:
        ConfigurationError: 옵션이 없거나 잘못된 경우
    """
    if isinstance(options, ConnectorSettings):
        return options
    if not isinstance(options, Mapping):
        raise ConfigurationError(
            f"connector options must be a mapping, got {type(options).__name__}"
        )
    try:
        return ConnectorSettings(**options)
    except ValidationError as e:
        raise ConfigurationError(f"invalid connector options: {e}") from e
    except TypeError as e:
        # 문자열이 아닌 키
        raise ConfigurationError(f"invalid connector options: {e}") from e


# 환경 변수 이름(접두사 제외) → 설정 필드
ENV_FIELDS = {
    "REGION": "region",
    "BUFFER_TIMEOUT": "buffer_timeout",
    "TABLE": "table",
    "SPLIT_CHAR": "split_char",
    "BACKEND": "backend",
    "ENDPOINT_URL": "endpoint_url",
    "AWS_ACCESS_KEY_ID": "aws_access_key_id",
    "AWS_SECRET_ACCESS_KEY": "aws_secret_access_key",
    "AWS_SESSION_TOKEN": "aws_session_token",
    "PROFILE": "profile",
    "SQLITE_PATH": "sqlite_path",
    "READ_CAPACITY": "read_capacity",
    "WRITE_CAPACITY": "write_capacity",
    "AUTO_CREATE_TABLE": "auto_create_table",
    "CONSISTENT_READ": "consistent_read",
    "HEALTH_CHECK_INTERVAL": "health_check_interval",
    "TABLE_WAIT_TIMEOUT": "table_wait_timeout",
}

def load_settings_from_env(prefix: str = "DS_DYNAMODB_", environ: Mapping[str, str] | None = None) -> ConnectorSettings:
    """환경 변수에서 설정을 읽습니다. 값 변환은 pydantic이 수행합니다."""
    env = os.environ if environ is None else environ
    options = {
        field: env[prefix + name]
        for name, field in ENV_FIELDS.items()
        if prefix + name in env
    }
    return build_settings(options)
