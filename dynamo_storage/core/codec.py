"""
Value codec for stored records.

Values are stored as compact JSON. Before encoding, the payload is checked so
that anything JSON would silently coerce (tuples, non-string keys, NaN) is
rejected instead of coming back different from what was written.
"""

import json
import math
from typing import Any

from dynamo_storage.core.errors import BackendError, InvalidValueError

_SCALARS = (str, bool, int, type(None))


def _check(value: Any, path: str) -> None:
    if isinstance(value, _SCALARS):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidValueError(f"non-finite float at {path}")
        return
    if isinstance(value, list):
        for i, item in enumerate(value):
            _check(item, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for k, item in value.items():
            if not isinstance(k, str):
                raise InvalidValueError(f"non-string key {k!r} at {path}")
            _check(item, f"{path}.{k}")
        return
    raise InvalidValueError(f"unsupported type {type(value).__name__} at {path}")


def encode_value(value: Any) -> str:
    """
    값을 저장 형식(JSON 문자열)으로 변환합니다.

    Args:
        value: 저장할 값

    Returns:
        JSON 문자열

    Raises:
        InvalidValueError: 손실 없이 표현할 수 없는 값
    """
    _check(value, "$")
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def decode_value(payload: str) -> Any:
    """
    저장된 JSON 문자열을 값으로 복원합니다.

    Raises:
        BackendError: 저장된 값이 JSON이 아닌 경우 (code="MalformedItem")
    """
    try:
        return json.loads(payload)
    except (TypeError, ValueError) as e:
        raise BackendError(
            f"stored value is not valid JSON: {e}", code="MalformedItem", operation="get"
        ) from e
