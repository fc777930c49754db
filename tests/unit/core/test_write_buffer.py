"""
쓰기 버퍼 테스트

배치 분할, 호출별 완료 통지, 미처리 항목 재전송을 확인합니다.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, Mock
from dynamo_storage.adapters.memory import InMemoryBackend
from dynamo_storage.core.errors import BackendError, ConnectorClosedError, TableNotFoundError
from dynamo_storage.core.models import WriteRequest
from dynamo_storage.core.write_buffer import PendingWrite, WriteBuffer, split_batches


class RecordingBackend(InMemoryBackend):
    """호출 기록을 남기는 메모리 백엔드"""

    def __init__(self, tables=("records",)):
        super().__init__(tables=list(tables))
        self.calls = []

    async def put_item(self, table, key, payload):
        self.calls.append(("put", table, key, payload))
        await super().put_item(table, key, payload)

    async def delete_item(self, table, key):
        self.calls.append(("delete", table, key))
        await super().delete_item(table, key)

    async def write_batch(self, requests):
        self.calls.append(("batch", [r.key for r in requests]))
        return await super().write_batch(requests)


def _pending(table, key, payload="x"):
    return PendingWrite(WriteRequest(table, key, payload), Mock())


def _buffer(backend, **kwargs):
    params = dict(buffer_timeout_ms=5, max_batch_size=25, max_batch_retries=3,
                  backoff_initial=0.001, backoff_max=0.002)
    params.update(kwargs)
    return WriteBuffer(backend, **params)


class TestSplitBatches:
    """배치 분할 테스트"""

    def test_distinct_keys_share_a_batch(self):
        pending = [_pending("t1", k) for k in "abc"]
        batches = split_batches(pending, 25)
        assert [[p.request.key for p in b] for b in batches] == [["a", "b", "c"]]

    def test_repeated_key_starts_new_batch_in_order(self):
        pending = [_pending("t1", "k", str(i)) for i in range(3)]
        batches = split_batches(pending, 25)
        assert [[p.request.payload for p in b] for b in batches] == [["0"], ["1"], ["2"]]

    def test_respects_max_size(self):
        pending = [_pending("t1", str(i)) for i in range(7)]
        batches = split_batches(pending, 3)
        assert [len(b) for b in batches] == [3, 3, 1]

    def test_groups_by_table(self):
        pending = [_pending("t1", "a"), _pending("t2", "a"), _pending("t1", "b")]
        batches = split_batches(pending, 25)
        assert [[p.request.target for p in b] for b in batches] == [
            [("t1", "a"), ("t1", "b")],
            [("t2", "a")],
        ]

    def test_delete_after_put_of_same_key_is_ordered(self):
        pending = [_pending("t1", "k", "v"), _pending("t1", "k", None)]
        batches = split_batches(pending, 25)
        assert [b[0].request.is_delete for b in batches] == [False, True]


class TestWriteBuffer:
    """쓰기 버퍼 동작 테스트"""

    @pytest.mark.asyncio
    async def test_single_write_uses_put_item(self):
        backend = RecordingBackend()
        buffer = _buffer(backend)

        await buffer.submit(WriteRequest("records", "k", '"v"'))

        assert backend.calls == [("put", "records", "k", '"v"')]
        assert await backend.get_item("records", "k") == '"v"'

    @pytest.mark.asyncio
    async def test_single_delete_uses_delete_item(self):
        backend = RecordingBackend()
        buffer = _buffer(backend)

        await buffer.submit(WriteRequest("records", "k"))

        assert backend.calls == [("delete", "records", "k")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout_ms", [0, 5])
    async def test_concurrent_writes_to_same_key_keep_issue_order(self, timeout_ms):
        backend = RecordingBackend()
        buffer = _buffer(backend, buffer_timeout_ms=timeout_ms)

        results = await asyncio.gather(*(
            buffer.submit(WriteRequest("records", "k", str(i))) for i in (1, 2, 3)
        ))

        assert results == [None, None, None]
        assert [c[3] for c in backend.calls] == ["1", "2", "3"]
        assert await backend.get_item("records", "k") == "3"

    @pytest.mark.asyncio
    async def test_distinct_keys_go_in_one_batch(self):
        backend = RecordingBackend()
        buffer = _buffer(backend)

        await asyncio.gather(*(
            buffer.submit(WriteRequest("records", f"k{i}", str(i))) for i in range(5)
        ))

        assert backend.calls == [("batch", ["k0", "k1", "k2", "k3", "k4"])]

    @pytest.mark.asyncio
    async def test_full_batch_flushes_without_waiting(self):
        backend = RecordingBackend()
        buffer = _buffer(backend, buffer_timeout_ms=60_000, max_batch_size=3)

        await asyncio.wait_for(asyncio.gather(*(
            buffer.submit(WriteRequest("records", f"k{i}", str(i))) for i in range(3)
        )), timeout=1)

        assert backend.calls == [("batch", ["k0", "k1", "k2"])]

    @pytest.mark.asyncio
    async def test_flush_sends_immediately(self):
        backend = RecordingBackend()
        buffer = _buffer(backend, buffer_timeout_ms=60_000)

        task = asyncio.ensure_future(buffer.submit(WriteRequest("records", "k", "1")))
        await asyncio.sleep(0)
        assert buffer.pending_count == 1

        await buffer.flush()
        await asyncio.wait_for(task, timeout=1)
        assert buffer.pending_count == 0

    @pytest.mark.asyncio
    async def test_unprocessed_items_are_resubmitted(self):
        backend = RecordingBackend()
        requests = [WriteRequest("records", f"k{i}", str(i)) for i in range(3)]
        backend.write_batch = AsyncMock(side_effect=[[requests[2]], []])
        buffer = _buffer(backend)

        await asyncio.gather(*(buffer.submit(r) for r in requests))

        assert backend.write_batch.await_count == 2
        assert backend.write_batch.await_args_list[1].args[0] == [requests[2]]

    @pytest.mark.asyncio
    async def test_exhausted_resubmissions_fail_only_their_calls(self):
        backend = RecordingBackend()
        requests = [WriteRequest("records", f"k{i}", str(i)) for i in range(2)]
        backend.write_batch = AsyncMock(return_value=[requests[1]])
        buffer = _buffer(backend, max_batch_retries=2)

        results = await asyncio.gather(*(buffer.submit(r) for r in requests), return_exceptions=True)

        assert results[0] is None
        assert isinstance(results[1], BackendError)
        assert results[1].code == "UnprocessedItems"
        assert backend.write_batch.await_count == 3

    @pytest.mark.asyncio
    async def test_backend_error_fails_only_that_table(self):
        backend = RecordingBackend(tables=("records",))
        buffer = _buffer(backend)

        results = await asyncio.gather(
            buffer.submit(WriteRequest("records", "a", "1")),
            buffer.submit(WriteRequest("missing", "b", "2")),
            return_exceptions=True,
        )

        assert results[0] is None
        assert isinstance(results[1], TableNotFoundError)

    @pytest.mark.asyncio
    async def test_unexpected_failure_reports_out_of_band(self):
        backend = RecordingBackend()
        backend.put_item = AsyncMock(side_effect=RuntimeError("driver bug"))
        on_error = Mock()
        buffer = _buffer(backend, on_error=on_error)

        with pytest.raises(BackendError):
            await buffer.submit(WriteRequest("records", "k", "1"))

        on_error.assert_called_once()
        assert isinstance(on_error.call_args.args[0], RuntimeError)

    @pytest.mark.asyncio
    async def test_closed_buffer_rejects_writes(self):
        backend = RecordingBackend()
        buffer = _buffer(backend)
        await buffer.close()

        with pytest.raises(ConnectorClosedError):
            await buffer.submit(WriteRequest("records", "k", "1"))

    @pytest.mark.asyncio
    async def test_close_flushes_pending_writes(self):
        backend = RecordingBackend()
        buffer = _buffer(backend, buffer_timeout_ms=60_000)

        task = asyncio.ensure_future(buffer.submit(WriteRequest("records", "k", "1")))
        await asyncio.sleep(0)
        await buffer.close()

        await asyncio.wait_for(task, timeout=1)
        assert await backend.get_item("records", "k") == "1"
