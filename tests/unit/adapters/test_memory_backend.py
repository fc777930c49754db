"""
메모리 백엔드 테스트
"""

import pytest
from dynamo_storage.adapters.memory import InMemoryBackend
from dynamo_storage.core.errors import TableExistsError, TableNotFoundError
from dynamo_storage.core.models import WriteRequest


class TestInMemoryBackend:
    """메모리 백엔드 동작 테스트"""

    @pytest.mark.asyncio
    async def test_put_get_delete(self, memory_backend):
        await memory_backend.put_item("deepstream_records", "k", '{"v":1}')
        assert await memory_backend.get_item("deepstream_records", "k") == '{"v":1}'

        await memory_backend.delete_item("deepstream_records", "k")
        assert await memory_backend.get_item("deepstream_records", "k") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self, memory_backend):
        await memory_backend.delete_item("deepstream_records", "absent")

    @pytest.mark.asyncio
    async def test_missing_table_raises(self, memory_backend):
        with pytest.raises(TableNotFoundError) as exc_info:
            await memory_backend.get_item("nope", "k")
        assert exc_info.value.table == "nope"

    @pytest.mark.asyncio
    async def test_write_batch_applies_in_order(self, memory_backend):
        requests = [
            WriteRequest("deepstream_records", "a", "1"),
            WriteRequest("deepstream_records", "b", "2"),
            WriteRequest("deepstream_records", "a"),
        ]
        assert await memory_backend.write_batch(requests) == []
        assert await memory_backend.get_item("deepstream_records", "a") is None
        assert await memory_backend.get_item("deepstream_records", "b") == "2"

    @pytest.mark.asyncio
    async def test_write_batch_with_missing_table_applies_nothing(self, memory_backend):
        requests = [
            WriteRequest("deepstream_records", "a", "1"),
            WriteRequest("nope", "b", "2"),
        ]
        with pytest.raises(TableNotFoundError):
            await memory_backend.write_batch(requests)
        assert await memory_backend.get_item("deepstream_records", "a") is None

    @pytest.mark.asyncio
    async def test_table_lifecycle(self):
        backend = InMemoryBackend()
        assert await backend.table_exists("Xj43s3") is False

        await backend.create_table("Xj43s3")
        assert await backend.table_exists("Xj43s3") is True
        with pytest.raises(TableExistsError):
            await backend.create_table("Xj43s3")

        await backend.delete_table("Xj43s3")
        with pytest.raises(TableNotFoundError):
            await backend.delete_table("Xj43s3")

    @pytest.mark.asyncio
    async def test_list_tables_sorted(self):
        backend = InMemoryBackend(tables=["zeta", "alpha"])
        assert await backend.list_tables() == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_close(self, memory_backend):
        await memory_backend.close()
        assert memory_backend.closed is True
