"""
In-memory storage backend.

Keeps tables in process memory with the same absence and error semantics
as the DynamoDB adapter. Useful for tests and for running a host without
AWS access. Each call yields to the event loop once so callers observe
real interleaving.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

from dynamo_storage.core.errors import TableExistsError, TableNotFoundError
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.observability.logging_setup import get_logger

log = get_logger("dynamo_storage.memory")


class InMemoryBackend:
    """메모리 기반 저장소 백엔드"""

    def __init__(self, tables: Optional[Sequence[str]] = None):
        """
        초기화합니다.

        Args:
            tables: 미리 만들어 둘 테이블 이름들
        """
        self._tables: Dict[str, Dict[str, str]] = {name: {} for name in (tables or ())}
        self.closed = False

    def _table(self, table: str) -> Dict[str, str]:
        try:
            return self._tables[table]
        except KeyError:
            raise TableNotFoundError(table) from None

    async def ping(self) -> None:
        await asyncio.sleep(0)

    async def get_item(self, table: str, key: str) -> Optional[str]:
        await asyncio.sleep(0)
        return self._table(table).get(key)

    async def put_item(self, table: str, key: str, payload: str) -> None:
        await asyncio.sleep(0)
        self._table(table)[key] = payload

    async def delete_item(self, table: str, key: str) -> None:
        await asyncio.sleep(0)
        self._table(table).pop(key, None)

    async def write_batch(self, requests: Sequence[WriteRequest]) -> List[WriteRequest]:
        await asyncio.sleep(0)
        # 전체 배치를 검증한 뒤 적용
        for request in requests:
            self._table(request.table)
        for request in requests:
            if request.is_delete:
                self._tables[request.table].pop(request.key, None)
            else:
                self._tables[request.table][request.key] = request.payload
        return []

    async def create_table(self, table: str) -> None:
        await asyncio.sleep(0)
        if table in self._tables:
            raise TableExistsError(table)
        self._tables[table] = {}
        log.info(f"테이블 생성됨: {table}")

    async def delete_table(self, table: str) -> None:
        await asyncio.sleep(0)
        if table not in self._tables:
            raise TableNotFoundError(table)
        del self._tables[table]
        log.info(f"테이블 삭제됨: {table}")

    async def table_exists(self, table: str) -> bool:
        await asyncio.sleep(0)
        return table in self._tables

    async def list_tables(self) -> List[str]:
        await asyncio.sleep(0)
        return sorted(self._tables)

    async def close(self) -> None:
        self.closed = True
