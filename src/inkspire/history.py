"""Fixed-capacity history of visited scenes used by the ``back`` scene."""

from __future__ import annotations

from collections import deque
from typing import Deque, Generic, Iterator, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_HISTORY_CAPACITY = 16


def _validate_capacity(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"capacity must be an int, got {type(value)!r}")
    if value < 1:
        raise ValueError("capacity must be a positive integer")
    return value


class BoundedHistory(Generic[T]):
    """A stack that forgets its oldest entry once ``capacity`` is exceeded."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._entries: Deque[T] = deque(maxlen=_validate_capacity(capacity))

    @property
    def capacity(self) -> int:
        assert self._entries.maxlen is not None
        return self._entries.maxlen

    def push(self, entry: T) -> None:
        self._entries.append(entry)

    def pop(self) -> T:
        """Remove and return the most recent entry.

        Raises:
            IndexError: when the history is empty.
        """

        if not self._entries:
            raise IndexError("pop from empty history")
        return self._entries.pop()

    def peek(self) -> T | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> Tuple[T, ...]:
        """Return the stored entries from oldest to newest."""

        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[T]:  # pragma: no cover - trivial delegation
        return iter(self._entries)


__all__ = ["BoundedHistory", "DEFAULT_HISTORY_CAPACITY"]
