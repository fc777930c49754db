"""
DynamoDB backend adapter for the storage connector.

This module implements the backend port on Amazon DynamoDB using a
single boto3 client. boto3 clients are thread-safe, so each call runs
in a worker thread and concurrent calls share the client and its
connection pool.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from dynamo_storage.core.errors import (
    BackendError, ConfigurationError, TableExistsError, TableNotFoundError
)
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.observability.logging_setup import get_logger
from dynamo_storage.settings import ConnectorSettings

log = get_logger("dynamo_storage.dynamodb")

# 테이블 상태 폴링 간격 (초)
WAITER_DELAY = 2


def create_client(settings: ConnectorSettings):
    """
    설정으로 boto3 DynamoDB 클라이언트를 생성합니다.

    Raises:
        ConfigurationError: 프로필/자격 증명 설정 오류
    """
    try:
        session = boto3.session.Session(
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
            region_name=settings.region,
            profile_name=settings.profile,
        )
        return session.client(
            "dynamodb",
            endpoint_url=settings.endpoint_url,
            config=Config(
                connect_timeout=settings.connect_timeout,
                read_timeout=settings.read_timeout,
                max_pool_connections=settings.max_pool_connections,
                retries={"mode": "standard"},
            ),
        )
    except BotoCoreError as e:
        raise ConfigurationError(f"cannot create DynamoDB client: {e}") from e


class DynamoDBBackend:
    """DynamoDB 저장소 백엔드"""

    def __init__(self, settings: ConnectorSettings, client: Any = None):
        """
        초기화합니다.

        Args:
            settings: 커넥터 설정
            client: 주입할 boto3 클라이언트 (None이면 설정으로 생성)
        """
        self.settings = settings
        self.key_attribute = settings.key_attribute
        self.value_attribute = settings.value_attribute
        self.client = client if client is not None else create_client(settings)
        log.info(f"DynamoDB 백엔드 초기화됨 region:{settings.region} endpoint:{settings.endpoint_url}")

    async def _invoke(self, operation: str, method: str, *, table: Optional[str] = None, **kwargs) -> Dict:
        """
        클라이언트 메서드를 워커 스레드에서 호출하고 오류를 변환합니다.

        Args:
            operation: 커넥터 작업 이름 (로그/오류용)
            method: boto3 클라이언트 메서드 이름
            table: 대상 테이블 (ResourceNotFound 변환용)
        """
        try:
            return await asyncio.to_thread(getattr(self.client, method), **kwargs)
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "ClientError")
            message = error.get("Message") or str(e)
            if code == "ResourceNotFoundException" and table is not None:
                raise TableNotFoundError(table) from e
            if code == "ResourceInUseException" and operation == "create_table" and table is not None:
                raise TableExistsError(table) from e
            log.error(f"DynamoDB {operation} 실패 code:{code} error:{message}")
            raise BackendError(message, code=code, operation=operation) from e
        except BotoCoreError as e:
            log.error(f"DynamoDB {operation} 실패 error:{e}")
            raise BackendError(str(e), code=type(e).__name__, operation=operation) from e

    def _key(self, key: str) -> Dict[str, Dict[str, str]]:
        return {self.key_attribute: {"S": key}}

    def _item(self, key: str, payload: str) -> Dict[str, Dict[str, str]]:
        return {self.key_attribute: {"S": key}, self.value_attribute: {"S": payload}}

    def _wait(self, waiter_name: str, table: str) -> None:
        waiter = self.client.get_waiter(waiter_name)
        waiter.wait(
            TableName=table,
            WaiterConfig={
                "Delay": WAITER_DELAY,
                "MaxAttempts": max(1, math.ceil(self.settings.table_wait_timeout / WAITER_DELAY)),
            },
        )

    async def _wait_for(self, waiter_name: str, table: str, operation: str) -> None:
        try:
            await asyncio.to_thread(self._wait, waiter_name, table)
        except WaiterError as e:
            log.error(f"DynamoDB {operation} 대기 시간 초과 table:{table}")
            raise BackendError(f"timed out waiting for table {table}: {e}", code="WaiterTimeout", operation=operation) from e
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e), code=type(e).__name__, operation=operation) from e

    async def ping(self) -> None:
        await self._invoke("ping", "list_tables", Limit=1)

    async def get_item(self, table: str, key: str) -> Optional[str]:
        response = await self._invoke(
            "get", "get_item",
            table=table,
            TableName=table,
            Key=self._key(key),
            ConsistentRead=self.settings.consistent_read,
        )
        item = response.get("Item")
        if not item:
            return None
        try:
            return item[self.value_attribute]["S"]
        except KeyError:
            raise BackendError(
                f"item {key!r} in {table} has no string attribute {self.value_attribute!r}",
                code="MalformedItem", operation="get"
            ) from None

    async def put_item(self, table: str, key: str, payload: str) -> None:
        await self._invoke("set", "put_item", table=table, TableName=table, Item=self._item(key, payload))

    async def delete_item(self, table: str, key: str) -> None:
        await self._invoke("delete", "delete_item", table=table, TableName=table, Key=self._key(key))

    def _to_request_items(self, requests: Sequence[WriteRequest]) -> Dict[str, List[Dict]]:
        request_items: Dict[str, List[Dict]] = {}
        for request in requests:
            if request.is_delete:
                entry = {"DeleteRequest": {"Key": self._key(request.key)}}
            else:
                entry = {"PutRequest": {"Item": self._item(request.key, request.payload)}}
            request_items.setdefault(request.table, []).append(entry)
        return request_items

    def _from_unprocessed(self, unprocessed: Dict[str, List[Dict]], requests: Sequence[WriteRequest]) -> List[WriteRequest]:
        by_target = {request.target: request for request in requests}
        remaining = []
        for table, entries in unprocessed.items():
            for entry in entries:
                if "PutRequest" in entry:
                    key = entry["PutRequest"]["Item"][self.key_attribute]["S"]
                else:
                    key = entry["DeleteRequest"]["Key"][self.key_attribute]["S"]
                remaining.append(by_target[(table, key)])
        return remaining

    async def write_batch(self, requests: Sequence[WriteRequest]) -> List[WriteRequest]:
        """
        BatchWriteItem으로 요청 묶음을 전송합니다.

        Returns:
            UnprocessedItems에 해당하는 요청들
        """
        if not requests:
            return []
        tables = {request.table for request in requests}
        response = await self._invoke(
            "write_batch", "batch_write_item",
            table=next(iter(tables)) if len(tables) == 1 else None,
            RequestItems=self._to_request_items(requests),
        )
        unprocessed = response.get("UnprocessedItems") or {}
        remaining = self._from_unprocessed(unprocessed, requests)
        if remaining:
            log.warning(f"처리되지 않은 배치 항목 {len(remaining)}개")
        return remaining

    async def create_table(self, table: str) -> None:
        kwargs: Dict[str, Any] = {
            "TableName": table,
            "AttributeDefinitions": [{"AttributeName": self.key_attribute, "AttributeType": "S"}],
            "KeySchema": [{"AttributeName": self.key_attribute, "KeyType": "HASH"}],
        }
        if self.settings.provisioned:
            kwargs["ProvisionedThroughput"] = {
                "ReadCapacityUnits": self.settings.read_capacity,
                "WriteCapacityUnits": self.settings.write_capacity,
            }
        else:
            kwargs["BillingMode"] = "PAY_PER_REQUEST"

        await self._invoke("create_table", "create_table", table=table, **kwargs)
        await self._wait_for("table_exists", table, "create_table")
        log.info(f"테이블 생성됨: {table}")

    async def delete_table(self, table: str) -> None:
        await self._invoke("delete_table", "delete_table", table=table, TableName=table)
        await self._wait_for("table_not_exists", table, "delete_table")
        log.info(f"테이블 삭제됨: {table}")

    async def table_exists(self, table: str) -> bool:
        try:
            await self._invoke("table_exists", "describe_table", table=table, TableName=table)
            return True
        except TableNotFoundError:
            return False

    def _list_all_tables(self) -> List[str]:
        names: List[str] = []
        for page in self.client.get_paginator("list_tables").paginate():
            names.extend(page.get("TableNames", []))
        return names

    async def list_tables(self) -> List[str]:
        try:
            return await asyncio.to_thread(self._list_all_tables)
        except (ClientError, BotoCoreError) as e:
            raise BackendError(str(e), code=type(e).__name__, operation="list_tables") from e

    async def close(self) -> None:
        """클라이언트 연결 풀을 닫습니다."""
        close = getattr(self.client, "close", None)
        if close is not None:
            await asyncio.to_thread(close)
        log.info("DynamoDB 클라이언트 종료됨")
