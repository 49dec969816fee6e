"""Buffered checklist edits written back on a timer."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from garageflow.client.background import ErrorChannel
from garageflow.core.errors import GarageflowError
from garageflow.schemas import ChecklistResponseIn

logger = logging.getLogger(__name__)

SaveFn = Callable[[list[ChecklistResponseIn]], Awaitable[Any]]


class ChecklistDraft:
    """Pending responses keyed by checklist item, flushed by one writer.

    Edits accumulate in a buffer. ``interval`` seconds after the first
    unsaved edit the buffer is written with ``save``; ``flush()`` writes it
    immediately. While a write is in flight no other flush starts. Entries
    leave the buffer only once the write succeeded and only if they were not
    edited again meanwhile. A failed write keeps everything and re-arms the
    timer.
    """

    def __init__(self, save: SaveFn, interval: float = 30.0, errors: ErrorChannel | None = None):
        self._save = save
        self._interval = interval
        self._errors = errors
        self._pending: dict[str, ChecklistResponseIn] = {}
        self._timer: asyncio.Task | None = None
        self._flushing = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self.saves = 0

    @property
    def pending(self) -> dict[str, ChecklistResponseIn]:
        return dict(self._pending)

    @property
    def flushing(self) -> bool:
        return self._flushing

    @property
    def dirty(self) -> bool:
        return bool(self._pending)

    def record(self, response: ChecklistResponseIn | dict) -> None:
        if self._closed:
            raise RuntimeError("draft is closed")
        if isinstance(response, dict):
            response = ChecklistResponseIn.model_validate(response)
        self._pending[response.checklist_item_id] = response
        self._arm()

    def _arm(self) -> None:
        if self._closed or (self._timer is not None and not self._timer.done()):
            return
        self._timer = asyncio.create_task(self._wait_and_flush())

    async def _wait_and_flush(self) -> None:
        await asyncio.sleep(self._interval)
        self._timer = None
        try:
            await self.flush()
        except Exception as exc:
            logger.exception("Checklist auto-save crashed, keeping %d edit(s)", len(self._pending))
            if self._errors is not None:
                await self._errors.publish(exc, context="checklist-autosave")

    async def flush(self) -> bool:
        """Write the buffer. Returns False if skipped (write in flight) or failed."""
        if self._flushing:
            return False
        if not self._pending:
            return True

        self._flushing = True
        self._idle.clear()
        batch = dict(self._pending)
        try:
            await self._save(list(batch.values()))
        except GarageflowError as exc:
            logger.warning("Checklist auto-save failed, keeping %d edit(s): %s", len(batch), exc)
            if self._errors is not None:
                await self._errors.publish(exc, context="checklist-autosave")
            return False
        else:
            self.saves += 1
            for item_id, response in batch.items():
                if self._pending.get(item_id) is response:
                    del self._pending[item_id]
            return True
        finally:
            self._flushing = False
            self._idle.set()
            if self._pending:
                self._arm()

    async def close(self) -> bool:
        """Stop the timer and write whatever is left."""
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        self._closed = True
        await self._idle.wait()
        return await self.flush()

    async def __aenter__(self) -> ChecklistDraft:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
