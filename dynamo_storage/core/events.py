"""
Event emitter for connector lifetime notifications.

Handlers are dispatched synchronously in registration order. Coroutine
handlers are scheduled as tasks on the running loop. A failing handler is
logged and never stops the remaining handlers or the emitter itself.
"""

import asyncio
from typing import Any, Callable, Dict, List, Set

from dynamo_storage.observability.logging_setup import get_logger

log = get_logger("dynamo_storage.events")


class EventEmitter:
    """이벤트 발행/구독 채널"""

    def __init__(self):
        self._handlers: Dict[str, List[Callable[..., Any]]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def on(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        """
        이벤트 핸들러를 등록합니다.

        Args:
            event: 이벤트 이름
            handler: 일반 함수 또는 코루틴 함수

        Returns:
            등록한 핸들러 (off()에 그대로 넘길 수 있음)
        """
        self._handlers.setdefault(event, []).append(handler)
        return handler

    def once(self, event: str, handler: Callable[..., Any]) -> Callable[..., Any]:
        """한 번만 호출되는 핸들러를 등록합니다."""

        def wrapper(*args):
            self.off(event, wrapper)
            return handler(*args)

        wrapper.__name__ = getattr(handler, "__name__", "handler")
        wrapper.__wrapped__ = handler
        return self.on(event, wrapper)

    def off(self, event: str, handler: Callable[..., Any]) -> None:
        """핸들러 등록을 해제합니다. once()로 등록한 원래 핸들러도 받습니다."""
        handlers = self._handlers.get(event, [])
        for registered in list(handlers):
            if registered is handler or getattr(registered, "__wrapped__", None) is handler:
                handlers.remove(registered)
                return

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        이벤트를 발행합니다.

        Returns:
            핸들러가 하나라도 있었는지 여부
        """
        handlers = list(self._handlers.get(event, []))
        if not handlers:
            return False

        for handler in handlers:
            name = getattr(handler, "__name__", repr(handler))
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    self._schedule(result)
            except Exception as e:
                log.opt(exception=e).error(f"이벤트 핸들러 오류 event:{event} handler:{name}")
        return True

    def _schedule(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise RuntimeError("coroutine handlers need a running event loop")
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.opt(exception=task.exception()).error("비동기 이벤트 핸들러 오류")
