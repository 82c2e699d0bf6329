"""A doubly linked list that is walked from the newest item to the oldest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


@dataclass(eq=False)
class Node:
    """A list node; ``left`` points to the older neighbour, ``right`` to the newer."""

    left: Optional["Node"]
    item: Any
    right: Optional["Node"] = field(default=None)


class WaitFreeList(Generic[T]):
    """Items are added at the head; iteration runs from the head towards older items."""

    def __init__(self) -> None:
        self._header: Optional[Node] = None

    def clear(self) -> None:
        """Forget every item."""
        self._header = None

    def add(self, item: T) -> Node:
        """Add ``item`` as the new head and return its node."""
        node = Node(self._header, item, None)
        if self._header is not None:
            self._header.right = node
        self._header = node
        return node

    def remove(self, node: Node) -> None:
        """Unlink ``node`` from the list."""
        right, left = node.right, node.left
        if right is not None:
            right.left = left
        if left is not None:
            left.right = right
        if node is self._header:
            self._header = left

    def first(self) -> Optional[Node]:
        """Return the head node (the newest), or None if the list is empty."""
        return self._header

    def _nodes(self) -> Iterator[Node]:
        node = self._header
        while node is not None:
            next_node = node.left
            yield node
            node = next_node

    def __iter__(self) -> Iterator[T]:
        for node in self._nodes():
            yield node.item