"""Fire-and-forget work whose failures go to a shared error channel instead of the caller."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Coroutine

logger = logging.getLogger(__name__)

ErrorHandler = Callable[["ReportedError"], Awaitable[None] | None]


@dataclass(frozen=True)
class ReportedError:
    context: str
    error: BaseException


class ErrorChannel:
    """Global error sink for background failures.

    Usage:
        errors = ErrorChannel()
        errors.subscribe(lambda r: print(r.context, r.error))
        await errors.publish(exc, context="autosave")
    """

    def __init__(self, history: int = 50) -> None:
        self._handlers: list[ErrorHandler] = []
        self.recent: deque[ReportedError] = deque(maxlen=history)

    def subscribe(self, handler: ErrorHandler) -> None:
        self._handlers.append(handler)

    async def publish(self, error: BaseException, context: str = "") -> None:
        report = ReportedError(context, error)
        self.recent.append(report)
        for handler in self._handlers:
            try:
                result = handler(report)
                if asyncio.iscoroutine(result):
                    await result
            except Exception:
                logger.exception("Error handler failed while reporting %s", context or type(error).__name__)


class BackgroundRunner:
    """Holds strong references to spawned tasks until they finish."""

    def __init__(self, errors: ErrorChannel) -> None:
        self.errors = errors
        self._tasks: set[asyncio.Task] = set()

    async def _guard(self, coro: Coroutine[Any, Any, Any], context: str) -> Any:
        try:
            return await coro
        except Exception as exc:
            logger.exception("Background task %s failed", context)
            await self.errors.publish(exc, context=context)
            return None

    def spawn(self, coro: Coroutine[Any, Any, Any], *, context: str = "background") -> asyncio.Task:
        task = asyncio.create_task(self._guard(coro, context), name=context)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding task."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
