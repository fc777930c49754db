"""
Write buffer for set and delete calls.

Writes are collected for ``buffer_timeout`` milliseconds (or until a full
batch is pending) and then flushed. A flush groups pending writes by table
and splits each group into batches holding at most one request per key, so
successive writes to one key land in successive batches. Batches are sent
one at a time under a single lock, which keeps per-key issue order. Every
submitted write resolves its own future exactly once.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set

from dynamo_storage.common.retry import exponential_backoff
from dynamo_storage.core.errors import BackendError, ConnectorClosedError, StorageError
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.observability import metrics
from dynamo_storage.observability.logging_setup import get_logger
from dynamo_storage.ports.backend import StorageBackendPort

log = get_logger("dynamo_storage.write_buffer")


@dataclass
class PendingWrite:
    """버퍼에 대기 중인 쓰기"""
    request: WriteRequest
    future: asyncio.Future


def split_batches(pending: Sequence[PendingWrite], max_size: int) -> List[List[PendingWrite]]:
    """
    대기 쓰기를 배치로 나눕니다.

    테이블별로 묶은 뒤, 같은 키가 다시 나오거나 배치가 가득 차면 새 배치를 시작합니다.
    각 키의 쓰기 순서는 유지됩니다.

    Args:
        pending: 제출 순서대로의 대기 쓰기
        max_size: 배치 최대 크기

    Returns:
        전송 순서대로의 배치 목록
    """
    by_table: Dict[str, List[PendingWrite]] = {}
    for item in pending:
        by_table.setdefault(item.request.table, []).append(item)

    batches: List[List[PendingWrite]] = []
    for items in by_table.values():
        current: List[PendingWrite] = []
        seen: Set[tuple] = set()
        for item in items:
            target = item.request.target
            if target in seen or len(current) >= max_size:
                batches.append(current)
                current, seen = [], set()
            current.append(item)
            seen.add(target)
        if current:
            batches.append(current)
    return batches


class WriteBuffer:
    """쓰기 버퍼 (배치 전송 및 호출별 완료 통지)"""

    def __init__(self,
                 backend: StorageBackendPort,
                 *,
                 buffer_timeout_ms: int,
                 max_batch_size: int = 25,
                 max_batch_retries: int = 5,
                 backoff_initial: float = 0.05,
                 backoff_max: float = 2.0,
                 on_error: Optional[Callable[[Exception], None]] = None):
        """
        초기화합니다.

        Args:
            backend: 백엔드 어댑터
            buffer_timeout_ms: 버퍼링 시간 (밀리초, 0이면 다음 루프 틱)
            max_batch_size: 배치 최대 크기
            max_batch_retries: 미처리 항목 재전송 횟수
            backoff_initial: 재전송 초기 백오프 (초)
            backoff_max: 재전송 최대 백오프 (초)
            on_error: 플러시 루프 자체가 예기치 않게 실패했을 때 호출
        """
        self.backend = backend
        self.buffer_timeout = buffer_timeout_ms / 1000.0
        self.max_batch_size = max_batch_size
        self.max_batch_retries = max_batch_retries
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max
        self.on_error = on_error

        self._pending: List[PendingWrite] = []
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._lock: Optional[asyncio.Lock] = None
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def submit(self, request: WriteRequest) -> None:
        """
        쓰기를 버퍼에 넣고 해당 쓰기가 백엔드에 반영될 때까지 기다립니다.

        Raises:
            ConnectorClosedError: 버퍼가 닫힌 경우
            StorageError: 이 쓰기가 포함된 배치가 실패한 경우
        """
        if self._closed:
            raise ConnectorClosedError("write buffer is closed")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append(PendingWrite(request, future))
        metrics.write_buffer_pending.set(len(self._pending))

        if len(self._pending) >= self.max_batch_size:
            self._cancel_timer()
            self._spawn(self._flush())
        elif self._timer is None:
            self._timer = self._spawn(self._flush_later())

        # 호출자가 취소되어도 쓰기 자체는 계속 진행
        await asyncio.shield(future)

    async def flush(self) -> None:
        """대기 중인 쓰기를 즉시 전송하고 완료될 때까지 기다립니다."""
        self._cancel_timer()
        await self._flush()

    async def close(self) -> None:
        """새 쓰기를 막고 남은 쓰기를 전송합니다."""
        self._closed = True
        await self.flush()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _flush_later(self) -> None:
        await asyncio.sleep(self.buffer_timeout)
        self._timer = None
        await self._flush()

    async def _flush(self) -> None:
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            drained, self._pending = self._pending, []
            metrics.write_buffer_pending.set(len(self._pending))
            if not drained:
                return
            try:
                for batch in split_batches(drained, self.max_batch_size):
                    await self._send(batch)
            except Exception as e:
                # _send는 StorageError를 호출별로 전달하므로 여기 오는 것은 예기치 않은 실패
                log.opt(exception=e).error("쓰기 버퍼 플러시 실패")
                for item in drained:
                    self._fail(item, BackendError(f"write buffer flush failed: {e}", operation="write_batch"))
                if self.on_error is not None:
                    self.on_error(e)

    async def _send(self, batch: List[PendingWrite]) -> None:
        requests = [item.request for item in batch]
        remaining: List[WriteRequest] = requests
        metrics.write_batches.inc()
        log.debug(f"배치 전송 size:{len(batch)} table:{requests[0].table}")

        try:
            if len(requests) == 1:
                request = requests[0]
                if request.is_delete:
                    await self.backend.delete_item(request.table, request.key)
                else:
                    await self.backend.put_item(request.table, request.key, request.payload)
                remaining = []
            else:
                remaining = await self.backend.write_batch(requests)

            attempt = 0
            while remaining and attempt < self.max_batch_retries:
                attempt += 1
                metrics.write_batch_resubmits.inc(len(remaining))
                log.warning(f"미처리 항목 재전송 {len(remaining)}개 (시도 {attempt}/{self.max_batch_retries})")
                await exponential_backoff(attempt, self.backoff_initial, self.backoff_max, jitter=True)
                remaining = await self.backend.write_batch(remaining)
        except StorageError as e:
            failed = {request.target for request in remaining}
            for item in batch:
                if item.request.target in failed:
                    self._fail(item, e)
                else:
                    self._resolve(item)
            return

        unprocessed = {request.target for request in remaining}
        for item in batch:
            if item.request.target in unprocessed:
                self._fail(item, BackendError(
                    f"write for {item.request.key!r} left unprocessed after {self.max_batch_retries} resubmissions",
                    code="UnprocessedItems", operation="write_batch"
                ))
            else:
                self._resolve(item)

    @staticmethod
    def _resolve(item: PendingWrite) -> None:
        if not item.future.done():
            item.future.set_result(None)

    @staticmethod
    def _fail(item: PendingWrite, error: Exception) -> None:
        if not item.future.done():
            item.future.set_exception(error)
