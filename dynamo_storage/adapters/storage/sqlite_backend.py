"""
SQLite-based storage backend for the connector.

This module implements the backend port on a local SQLite file,
one SQLite table per logical table, for development and single-host use.
SQLite compares identifiers case-insensitively while DynamoDB table names
are case-sensitive, so each logical name is stored under a hex-encoded
SQLite name (``users`` and ``Users`` are two tables).
"""

import aiosqlite
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence
from dynamo_storage.core.errors import BackendError, TableExistsError, TableNotFoundError
from dynamo_storage.core.keys import validate_table_name
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.observability.logging_setup import get_logger

log = get_logger("dynamo_storage.sqlite")

# SQLite 테이블 이름 접두사 (뒤에 논리 이름의 UTF-8 hex)
TABLE_PREFIX = "kv_"

TABLE_SCHEMA = 'CREATE TABLE "{name}" (k TEXT PRIMARY KEY, v TEXT NOT NULL)'


def physical_name(table: str) -> str:
    """논리 테이블 이름을 대소문자가 구분되는 SQLite 이름으로 바꿉니다."""
    return TABLE_PREFIX + validate_table_name(table).encode("utf-8").hex()


def logical_name(name: str) -> Optional[str]:
    """SQLite 테이블 이름을 논리 이름으로 되돌립니다. 커넥터 테이블이 아니면 None."""
    if not name.startswith(TABLE_PREFIX):
        return None
    try:
        return bytes.fromhex(name[len(TABLE_PREFIX):]).decode("utf-8")
    except ValueError:
        return None


class SQLiteBackend:
    """SQLite 기반 저장소 백엔드"""

    def __init__(self, path: str, timeout: float = 30.0):
        """
        초기화합니다.

        Args:
            path: SQLite 데이터베이스 파일 경로
            timeout: 잠금 대기 시간 (초)
        """
        self.path = path
        self.timeout = timeout
        log.info(f"SQLiteBackend 초기화: {path}")

    @asynccontextmanager
    async def _connect(self, operation: str, table: Optional[str] = None):
        """연결을 열고 sqlite 예외를 커넥터 예외로 변환합니다."""
        try:
            async with aiosqlite.connect(self.path, timeout=self.timeout) as db:
                yield db
        except aiosqlite.OperationalError as e:
            message = str(e)
            if table is not None and "no such table" in message:
                raise TableNotFoundError(table) from e
            if table is not None and "already exists" in message:
                raise TableExistsError(table) from e
            log.error(f"SQLite {operation} 오류: {e}")
            raise BackendError(message, code="OperationalError", operation=operation) from e
        except aiosqlite.Error as e:
            log.error(f"SQLite {operation} 오류: {e}")
            raise BackendError(str(e), code=type(e).__name__, operation=operation) from e

    async def ping(self) -> None:
        """데이터베이스 파일을 열 수 있는지 확인합니다."""
        async with self._connect("ping") as db:
            await db.execute("SELECT 1")

    async def get_item(self, table: str, key: str) -> Optional[str]:
        name = physical_name(table)
        async with self._connect("get", table) as db:
            cursor = await db.execute(f'SELECT v FROM "{name}" WHERE k = ?', (key,))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def put_item(self, table: str, key: str, payload: str) -> None:
        name = physical_name(table)
        async with self._connect("set", table) as db:
            await db.execute(f'INSERT OR REPLACE INTO "{name}" (k, v) VALUES (?, ?)', (key, payload))
            await db.commit()

    async def delete_item(self, table: str, key: str) -> None:
        name = physical_name(table)
        async with self._connect("delete", table) as db:
            await db.execute(f'DELETE FROM "{name}" WHERE k = ?', (key,))
            await db.commit()

    async def write_batch(self, requests: Sequence[WriteRequest]) -> List[WriteRequest]:
        """
        요청 묶음을 하나의 트랜잭션으로 적용합니다.

        Returns:
            항상 빈 목록 (SQLite는 부분 처리를 하지 않음)
        """
        current = None
        async with self._connect("write_batch") as db:
            try:
                for request in requests:
                    current = request.table
                    name = physical_name(current)
                    if request.is_delete:
                        await db.execute(f'DELETE FROM "{name}" WHERE k = ?', (request.key,))
                    else:
                        await db.execute(
                            f'INSERT OR REPLACE INTO "{name}" (k, v) VALUES (?, ?)',
                            (request.key, request.payload)
                        )
                await db.commit()
            except aiosqlite.OperationalError as e:
                await db.rollback()
                if current is not None and "no such table" in str(e):
                    raise TableNotFoundError(current) from e
                raise
        return []

    async def create_table(self, table: str) -> None:
        name = physical_name(table)
        async with self._connect("create_table", table) as db:
            await db.execute(TABLE_SCHEMA.format(name=name))
            await db.commit()
        log.info(f"테이블 생성됨: {table}")

    async def delete_table(self, table: str) -> None:
        name = physical_name(table)
        async with self._connect("delete_table", table) as db:
            await db.execute(f'DROP TABLE "{name}"')
            await db.commit()
        log.info(f"테이블 삭제됨: {table}")

    async def table_exists(self, table: str) -> bool:
        name = physical_name(table)
        async with self._connect("table_exists") as db:
            cursor = await db.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
            )
            return await cursor.fetchone() is not None

    async def list_tables(self) -> List[str]:
        async with self._connect("list_tables") as db:
            cursor = await db.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            rows = await cursor.fetchall()
        names = (logical_name(row[0]) for row in rows)
        return sorted(name for name in names if name is not None)

    async def close(self) -> None:
        """호출마다 연결을 열고 닫으므로 정리할 것이 없습니다."""
