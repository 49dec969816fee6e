"""Disposable client-side query cache holding two-phase (provisional/confirmed) values."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheState(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


@dataclass
class Provisional(Generic[T]):
    value: T
    state: CacheState = CacheState.PENDING
    error: Exception | None = None

    @property
    def confirmed(self) -> bool:
        return self.state is CacheState.CONFIRMED


def _key(entity: str, filters: dict[str, Any]) -> tuple:
    return (entity, tuple(sorted((k, v) for k, v in filters.items() if v is not None)))


class QueryCache:
    """Values keyed by (entity, filters).

    Only ``Confirmed`` entries reflect a server response. Pending values are
    optimistic and may be shown, never relied on for correctness.
    """

    def __init__(self):
        self._entries: dict[tuple, Provisional] = {}

    def get(self, entity: str, **filters) -> Provisional | None:
        return self._entries.get(_key(entity, filters))

    def confirmed(self, entity: str, **filters) -> Any | None:
        entry = self.get(entity, **filters)
        return entry.value if entry is not None and entry.confirmed else None

    def put_pending(self, entity: str, value: Any, **filters) -> Provisional:
        entry = Provisional(value)
        self._entries[_key(entity, filters)] = entry
        return entry

    def put_confirmed(self, entity: str, value: Any, **filters) -> Provisional:
        entry = Provisional(value, CacheState.CONFIRMED)
        self._entries[_key(entity, filters)] = entry
        return entry

    def mark_failed(self, entity: str, error: Exception, **filters) -> None:
        entry = self.get(entity, **filters)
        if entry is not None:
            entry.state = CacheState.FAILED
            entry.error = error

    def invalidate(self, entity: str, **filters) -> int:
        """Drop one entry, or every entry of ``entity`` when no filters are given."""
        if filters:
            return 1 if self._entries.pop(_key(entity, filters), None) is not None else 0
        stale = [k for k in self._entries if k[0] == entity]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug("Invalidated %d cached %s entries", len(stale), entity)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
