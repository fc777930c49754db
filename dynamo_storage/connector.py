"""
Storage connector.

Exposes the generic key/value and table-lifecycle interface over a backend
adapter. Each operation reports its own outcome through the awaited call;
readiness and connection-level faults are broadcast as ``ready`` and
``error`` events.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, List, Optional

from dynamo_storage import __version__
from dynamo_storage.adapters.factory import create_backend
from dynamo_storage.core.codec import decode_value, encode_value
from dynamo_storage.core.errors import BackendError, ConnectorClosedError, StorageError, TableExistsError
from dynamo_storage.core.events import EventEmitter
from dynamo_storage.core.keys import resolve_key, validate_table_name
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.core.write_buffer import WriteBuffer
from dynamo_storage.observability import metrics
from dynamo_storage.observability.logging_setup import get_logger
from dynamo_storage.ports.backend import StorageBackendPort
from dynamo_storage.settings import ConnectorSettings, build_settings

log = get_logger("dynamo_storage.connector")


class StorageConnector(EventEmitter):
    """DynamoDB 캐시/저장소 커넥터"""

    name = "dynamodb"
    version = __version__

    def __init__(self, options: Any, backend: Optional[StorageBackendPort] = None):
        """
        설정을 동기적으로 검증하고 백엔드 초기화를 시작합니다.

        실행 중인 이벤트 루프가 있으면 초기화 태스크를 바로 예약하고,
        없으면 첫 start() 또는 첫 작업에서 초기화합니다.

        Args:
            options: 설정 매핑 또는 ConnectorSettings
            backend: 주입할 백엔드 (None이면 설정으로 생성)

        Raises:
            ConfigurationError: 설정이 없거나 잘못된 경우
        """
        super().__init__()
        self._settings: ConnectorSettings = build_settings(options)
        self.backend: StorageBackendPort = backend if backend is not None else create_backend(self._settings)
        self.buffer = WriteBuffer(
            self.backend,
            buffer_timeout_ms=self._settings.buffer_timeout,
            max_batch_size=self._settings.max_batch_size,
            max_batch_retries=self._settings.max_batch_retries,
            backoff_initial=self._settings.backoff_initial_sec,
            backoff_max=self._settings.backoff_max_sec,
            on_error=lambda e: self._out_of_band("write_buffer", e),
        )

        self._ready = False
        self._closed = False
        self._init_task: Optional[asyncio.Task] = None
        self._health_task: Optional[asyncio.Task] = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._schedule_init()

        log.info(
            f"커넥터 생성됨 backend:{self._settings.backend} region:{self._settings.region} "
            f"table:{self._settings.table} buffer_timeout:{self._settings.buffer_timeout}ms"
        )

    @property
    def settings(self) -> ConnectorSettings:
        return self._settings

    @property
    def is_ready(self) -> bool:
        return self._ready

    # ---- 수명 주기 ----

    async def start(self) -> "StorageConnector":
        """
        초기화가 끝날 때까지 기다립니다. 여러 번 호출해도 안전합니다.

        Raises:
            BackendError: 백엔드 핸드셰이크 실패
            ConnectorClosedError: 이미 닫힌 경우
        """
        if self._closed:
            raise ConnectorClosedError("connector is closed")
        if self._ready:
            return self
        if self._init_task is None or self._init_task.done():
            # 이전 초기화가 실패했으면 다시 시도
            self._schedule_init()
        await asyncio.shield(self._init_task)
        return self

    def _schedule_init(self) -> None:
        self._init_task = asyncio.ensure_future(self._initialise())
        # 아무도 기다리지 않는 실패는 error 이벤트로 이미 전달됨
        self._init_task.add_done_callback(lambda t: t.cancelled() or t.exception())

    async def _initialise(self) -> None:
        try:
            await self.backend.ping()
            if self._settings.auto_create_table and not await self.backend.table_exists(self._settings.table):
                log.info(f"기본 테이블 없음, 생성: {self._settings.table}")
                try:
                    await self.backend.create_table(self._settings.table)
                except TableExistsError:
                    # 다른 커넥터가 먼저 생성함
                    pass
        except BackendError as e:
            self._out_of_band("start", e)
            raise
        except StorageError as e:
            error = BackendError(str(e), operation="start")
            self._out_of_band("start", error)
            raise error from e

        self._ready = True
        if self._settings.health_check_interval > 0:
            self._health_task = asyncio.ensure_future(self._health_loop())
        log.info(f"커넥터 준비 완료 name:{self.name} version:{self.version}")
        self.emit("ready")

    async def _health_loop(self) -> None:
        """주기적으로 백엔드를 확인하고 실패 시 error 이벤트를 발행합니다."""
        interval = self._settings.health_check_interval
        while not self._closed:
            await asyncio.sleep(interval)
            try:
                await self.backend.ping()
            except StorageError as e:
                self._out_of_band("health_check", e)
            except Exception as e:
                # 어댑터 밖의 예외도 루프를 멈추지 않고 error 이벤트로 전달
                log.opt(exception=e).error("헬스 체크 중 예기치 않은 오류")
                self._out_of_band("health_check", BackendError(str(e), operation="ping"))

    def _out_of_band(self, source: str, error: Exception) -> None:
        metrics.out_of_band_errors.labels(source=source).inc()
        log.error(f"연결 수준 오류 source:{source} error:{error}")
        self.emit("error", error)

    async def flush(self) -> None:
        """버퍼에 있는 쓰기를 즉시 전송합니다."""
        await self.buffer.flush()

    async def close(self) -> None:
        """남은 쓰기를 전송하고 백엔드를 닫습니다."""
        if self._closed:
            return
        self._closed = True
        if self._health_task is not None:
            self._health_task.cancel()
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        await self.buffer.close()
        await self.backend.close()
        self._ready = False
        log.info("커넥터 종료됨")
        self.emit("close")

    async def __aenter__(self) -> "StorageConnector":
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @asynccontextmanager
    async def _operation(self, operation: str):
        """준비 상태 확인, 메트릭, 로그를 묶어 처리합니다."""
        if self._closed:
            raise ConnectorClosedError("connector is closed")
        if not self._ready:
            await self.start()
        started = time.perf_counter()
        try:
            yield
        except StorageError as e:
            metrics.operations.labels(operation=operation, outcome="error").inc()
            log.debug(f"{operation} 실패 error:{type(e).__name__}: {e}")
            raise
        else:
            metrics.operations.labels(operation=operation, outcome="ok").inc()
        finally:
            metrics.operation_seconds.labels(operation=operation).observe(time.perf_counter() - started)

    def _resolve(self, key: str):
        return resolve_key(key, self._settings.table, self._settings.split_char)

    # ---- 키-값 작업 ----

    async def get(self, key: str) -> Optional[Any]:
        """
        키로 값을 조회합니다.

        Returns:
            저장된 값 또는 None (항목 없음)
        """
        table, item_key = self._resolve(key)
        async with self._operation("get"):
            payload = await self.backend.get_item(table, item_key)
            return None if payload is None else decode_value(payload)

    async def set(self, key: str, value: Any) -> None:
        """
        값을 저장합니다. 반환 시점에 이 쓰기는 백엔드에 반영되어 있습니다.

        Raises:
            InvalidValueError: 손실 없이 저장할 수 없는 값 (백엔드 호출 없음)
        """
        table, item_key = self._resolve(key)
        payload = encode_value(value)
        async with self._operation("set"):
            await self.buffer.submit(WriteRequest(table, item_key, payload))

    async def delete(self, key: str) -> None:
        """키를 삭제합니다. 없는 키도 성공입니다."""
        table, item_key = self._resolve(key)
        async with self._operation("delete"):
            await self.buffer.submit(WriteRequest(table, item_key))

    # ---- 테이블 작업 ----

    async def create_table(self, name: str) -> None:
        """
        테이블을 생성합니다.

        Raises:
            TableExistsError: 이미 존재하는 경우
            BackendError: 백엔드 실패
        """
        validate_table_name(name)
        async with self._operation("create_table"):
            await self.backend.create_table(name)

    async def delete_table(self, name: str) -> None:
        """
        테이블을 삭제합니다.

        Raises:
            TableNotFoundError: 존재하지 않는 경우
            BackendError: 백엔드 실패
        """
        validate_table_name(name)
        async with self._operation("delete_table"):
            await self.backend.delete_table(name)

    async def list_tables(self) -> List[str]:
        async with self._operation("list_tables"):
            return await self.backend.list_tables()
