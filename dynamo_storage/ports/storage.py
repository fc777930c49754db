"""
Storage connector port interface.

This module defines the protocol for the connector surface that hosts
program against.
"""

from typing import Any, Callable, Optional, Protocol


class StoragePort(Protocol):
    """키-값 저장소 커넥터 포트 인터페이스"""

    name: str
    version: str

    @property
    def is_ready(self) -> bool:
        ...

    async def get(self, key: str) -> Optional[Any]:
        """
        키로 값을 조회합니다.

        Args:
            key: 조회할 키

        Returns:
            값 또는 None
        """
        ...

    async def set(self, key: str, value: Any) -> None:
        """
        키-값을 저장합니다. 반환 시점에 백엔드에 기록이 끝나 있습니다.

        Args:
            key: 저장할 키
            value: 저장할 값
        """
        ...

    async def delete(self, key: str) -> None:
        """
        키를 삭제합니다.

        Args:
            key: 삭제할 키
        """
        ...

    async def create_table(self, name: str) -> None:
        ...

    async def delete_table(self, name: str) -> None:
        ...

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        ...
