"""
Error taxonomy for the storage connector.

Per-call errors are raised through the awaited coroutine of that call.
Connection-level faults are broadcast through the connector's ``error`` event.
"""

from typing import Optional


class StorageError(Exception):
    """커넥터 예외의 기본 클래스"""


class ConfigurationError(StorageError):
    """필수 설정이 없거나 잘못된 경우 (생성 시 동기적으로 발생)"""


class InvalidTableNameError(ConfigurationError):
    """테이블 이름 규칙 위반"""


class InvalidKeyError(StorageError):
    """빈 키 또는 테이블 부분만 있는 키"""


class InvalidValueError(StorageError):
    """손실 없이 저장할 수 없는 값"""


class BackendError(StorageError):
    """
    백엔드 호출 실패 (네트워크, 인증, 스로틀링 등).

    Args:
        message: 오류 메시지
        code: 백엔드 오류 코드 (예: ProvisionedThroughputExceededException)
        operation: 실패한 작업 이름
    """

    def __init__(self, message: str, *, code: Optional[str] = None, operation: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.operation = operation


class TableExistsError(StorageError):
    """이미 존재하는 테이블을 생성하려는 경우"""

    def __init__(self, table: str):
        super().__init__(f"table already exists: {table}")
        self.table = table


class TableNotFoundError(StorageError):
    """존재하지 않는 테이블을 대상으로 한 경우"""

    def __init__(self, table: str):
        super().__init__(f"table does not exist: {table}")
        self.table = table


class ConnectorClosedError(StorageError):
    """close() 이후의 작업 호출"""
