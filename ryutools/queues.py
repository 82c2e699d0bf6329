"""Thread-safe FIFO queues: a non-blocking one and one whose pop waits for items."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Generic, Optional, TypeVar

T = TypeVar("T")


class ThreadQueue(Generic[T]):
    """A FIFO queue guarded by a lock; reads on an empty queue give None."""

    def __init__(self) -> None:
        self._items: Deque[T] = deque()
        self._lock = threading.Lock()

    def push(self, item: T) -> None:
        """Append ``item`` to the back of the queue."""
        with self._lock:
            self._items.append(item)

    def pop(self) -> Optional[T]:
        """Remove and return the front item, or None if the queue is empty."""
        with self._lock:
            return self._items.popleft() if self._items else None

    def front(self) -> Optional[T]:
        """Return the front item without removing it, or None if empty."""
        with self._lock:
            return self._items[0] if self._items else None

    def back(self) -> Optional[T]:
        """Return the back item without removing it, or None if empty."""
        with self._lock:
            return self._items[-1] if self._items else None

    def is_empty(self) -> bool:
        """Return True if the queue holds no items."""
        with self._lock:
            return not self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SuspensionQueue(Generic[T]):
    """A FIFO queue whose ``pop`` blocks until an item arrives or it is terminated."""

    def __init__(self) -> None:
        self._items: Deque[T] = deque()
        self._cond = threading.Condition()
        self._terminated = False

    @property
    def is_terminated(self) -> bool:
        """True once ``terminate`` has been called."""
        return self._terminated

    def push(self, item: T) -> None:
        """Append ``item`` and wake any waiting consumers."""
        with self._cond:
            self._items.append(item)
            self._cond.notify_all()

    def pop(self) -> Optional[T]:
        """Remove and return the front item, waiting while the queue is empty.

        Returns None if the queue is terminated while it is empty.
        """
        with self._cond:
            while not self._items:
                if self._terminated:
                    return None
                self._cond.wait()
            return self._items.popleft()

    def terminate(self) -> None:
        """Release every consumer waiting on an empty queue."""
        with self._cond:
            self._terminated = True
            self._cond.notify_all()

    def is_empty(self) -> bool:
        """Return True if the queue holds no items."""
        with self._cond:
            return not self._items

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)