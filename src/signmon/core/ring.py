"""Fixed-capacity, time-ordered append log."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from datetime import datetime
from typing import Generic, Protocol, TypeVar


class _Timestamped(Protocol):
    @property
    def timestamp(self) -> datetime: ...


T = TypeVar("T", bound=_Timestamped)


class BoundedLog(Generic[T]):
    """Ring buffer of timestamped records; the oldest entry is evicted on overflow.

    Records are appended in completion order, so the head is always the oldest
    and time-based pruning pops from the front.
    """

    __slots__ = ("_items",)

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._items: deque[T] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._items.maxlen or 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def append(self, record: T) -> None:
        self._items.append(record)

    def since(self, cutoff: datetime) -> list[T]:
        """Records with ``timestamp >= cutoff``, oldest first."""
        return [r for r in self._items if r.timestamp >= cutoff]

    def latest(self) -> T | None:
        return self._items[-1] if self._items else None

    def prune_before(self, horizon: datetime) -> int:
        """Drop records older than ``horizon``. Returns how many were removed."""
        removed = 0
        while self._items and self._items[0].timestamp < horizon:
            self._items.popleft()
            removed += 1
        return removed
