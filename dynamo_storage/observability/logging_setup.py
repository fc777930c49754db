"""
Logging setup for the storage connector.

Modules obtain a bound loguru logger through ``get_logger``. The connector
never installs sinks itself; a host process calls ``setup_logging_dev`` (or
its own loguru configuration) once at startup.
"""

from __future__ import annotations
import logging
from loguru import logger

# boto3/botocore는 DEBUG에서 요청 본문까지 출력하므로 따로 레벨을 둔다
NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "aiosqlite", "asyncio")

DEV_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level:<7}</level> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """stdlib logging 레코드를 loguru로 넘기는 핸들러"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # logging 모듈 내부 프레임을 건너뛰어 실제 호출 위치를 기록
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def route_stdlib_logging(noisy_level: str = "WARNING") -> None:
    """
    stdlib logging을 loguru로 보냅니다.

    Args:
        noisy_level: NOISY_LOGGERS에 적용할 최소 레벨
    """
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in NOISY_LOGGERS:
        noisy = logging.getLogger(name)
        noisy.handlers = [InterceptHandler()]
        noisy.setLevel(noisy_level.upper())
        noisy.propagate = False


def setup_logging_dev(log_level: str = "INFO", noisy_level: str = "WARNING") -> None:
    """
    개발용 콘솔 로깅을 설정합니다.

    기존 sink를 모두 제거하고 컬러 콘솔 sink 하나를 등록한 뒤,
    boto3/aiosqlite 등의 stdlib 로그를 흡수합니다.
    """
    logger.remove()
    logger.configure(extra={"name": "dynamo_storage"})
    logger.add(
        sink=lambda m: print(m, end=""),
        format=DEV_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        level=log_level.upper(),
    )
    route_stdlib_logging(noisy_level)


def get_logger(name: str = "dynamo_storage", **ctx):
    """모듈 이름과 선택적 컨텍스트를 바인딩한 logger를 반환합니다."""
    return logger.bind(name=name, **ctx)
