"""
Storage backend port interface.

This module defines the protocol every backend adapter implements.
Adapters translate their driver errors into the connector's error taxonomy.
"""

from typing import List, Optional, Protocol, Sequence

from dynamo_storage.core.models import WriteRequest


class StorageBackendPort(Protocol):
    """저장소 백엔드 포트 인터페이스"""

    async def ping(self) -> None:
        """
        백엔드 연결/인증을 확인합니다.

        Raises:
            BackendError: 연결 또는 인증 실패
        """
        ...

    async def get_item(self, table: str, key: str) -> Optional[str]:
        """
        항목을 조회합니다.

        Args:
            table: 테이블 이름
            key: 항목 키

        Returns:
            인코딩된 값 또는 None (항목 없음)
        """
        ...

    async def put_item(self, table: str, key: str, payload: str) -> None:
        """항목을 생성하거나 덮어씁니다."""
        ...

    async def delete_item(self, table: str, key: str) -> None:
        """항목을 삭제합니다. 항목이 없어도 성공입니다."""
        ...

    async def write_batch(self, requests: Sequence[WriteRequest]) -> List[WriteRequest]:
        """
        쓰기 요청 묶음을 전송합니다. 같은 (table, key)는 한 번만 포함됩니다.

        Returns:
            백엔드가 처리하지 않은 요청 (재전송 대상)
        """
        ...

    async def create_table(self, table: str) -> None:
        """
        테이블을 생성하고 사용 가능해질 때까지 기다립니다.

        Raises:
            TableExistsError: 이미 존재하는 경우
        """
        ...

    async def delete_table(self, table: str) -> None:
        """
        테이블을 삭제하고 완전히 사라질 때까지 기다립니다.

        Raises:
            TableNotFoundError: 존재하지 않는 경우
        """
        ...

    async def table_exists(self, table: str) -> bool:
        ...

    async def list_tables(self) -> List[str]:
        ...

    async def close(self) -> None:
        ...
