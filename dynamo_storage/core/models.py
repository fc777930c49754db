"""
Core models for the storage connector.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class WriteRequest:
    """배치 쓰기 요청 (payload가 None이면 삭제)"""
    table: str
    key: str
    payload: Optional[str] = None

    @property
    def is_delete(self) -> bool:
        return self.payload is None

    @property
    def target(self) -> tuple:
        return (self.table, self.key)
