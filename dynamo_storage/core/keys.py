"""
Key and table name resolution.

Keys address the default table unless a split character is configured and
present in the key, in which case the prefix names the table.
"""

import re
from typing import Optional, Tuple

from dynamo_storage.core.errors import InvalidKeyError, InvalidTableNameError

# DynamoDB 테이블 이름 규칙
TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]{3,255}$")


def validate_table_name(name: str) -> str:
    """
    테이블 이름을 검증합니다.

    Args:
        name: 테이블 이름

    Returns:
        검증된 테이블 이름

    Raises:
        InvalidTableNameError: 규칙에 맞지 않는 경우
    """
    if not isinstance(name, str) or not TABLE_NAME_PATTERN.match(name):
        raise InvalidTableNameError(
            f"invalid table name {name!r}: expected 3-255 characters from [A-Za-z0-9_.-]"
        )
    return name


def resolve_key(key: str, default_table: str, split_char: Optional[str] = None) -> Tuple[str, str]:
    """
    키를 (테이블, 항목 키)로 분해합니다.

    Args:
        key: 애플리케이션 키
        default_table: 기본 테이블
        split_char: 테이블 구분 문자 (None이면 항상 기본 테이블)

    Returns:
        (table, item_key)
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(f"key must be a non-empty string, got {key!r}")

    if split_char and split_char in key:
        table, item_key = key.split(split_char, 1)
        if not item_key:
            raise InvalidKeyError(f"key {key!r} has no item part after {split_char!r}")
        return validate_table_name(table), item_key

    return default_table, key
