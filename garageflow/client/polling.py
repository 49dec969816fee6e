"""Cancellable periodic refresh bound to an ``async with`` block."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar

from garageflow.client.background import ErrorChannel
from garageflow.core.errors import GarageflowError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PeriodicRefresh(Generic[T]):
    """Call ``fetch`` every ``interval`` seconds until the block exits.

    A failed fetch is logged and published; the loop keeps going.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        interval: float,
        on_result: Callable[[T], Any] | None = None,
        errors: ErrorChannel | None = None,
        name: str = "refresh",
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fetch = fetch
        self._interval = interval
        self._on_result = on_result
        self._errors = errors
        self._name = name
        self._task: asyncio.Task | None = None
        self.latest: T | None = None
        self.runs = 0

    async def _loop(self) -> None:
        while True:
            try:
                self.latest = await self._fetch()
                self.runs += 1
                if self._on_result is not None:
                    self._on_result(self.latest)
            except GarageflowError as exc:
                logger.warning("Periodic %s failed: %s", self._name, exc)
                if self._errors is not None:
                    await self._errors.publish(exc, context=self._name)
            await asyncio.sleep(self._interval)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def __aenter__(self) -> PeriodicRefresh[T]:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
