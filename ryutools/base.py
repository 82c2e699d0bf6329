"""Shared callback types and the Memory data holder."""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

VoidEvent = Callable[[], None]
NotifyEvent = Callable[[Any], None]
StringEvent = Callable[[Any, str], None]
ErrorEvent = Callable[[Any, int, str], None]
IntegerEvent = Callable[[Any, int], None]
MemoryEvent = Callable[[Any, "Memory"], None]
DataEvent = Callable[[Any, Optional[bytes]], None]
AskEvent = Callable[[Any], bool]
TaskEvent = Callable[[int, str, Any, int, int], None]

BytesLike = Union[bytes, bytearray, memoryview]


class Memory:
    """A block of bytes with optional user data, tag and text attached.

    ``Memory()`` is empty, ``Memory(n)`` holds ``n`` zero bytes and
    ``Memory(data)`` holds a copy of ``data``.
    """

    def __init__(
        self,
        source: Union[None, int, BytesLike] = None,
        *,
        user_data: Any = None,
        tag: int = 0,
        text: str = "",
    ) -> None:
        if source is None:
            self.data = bytearray()
        elif isinstance(source, int):
            self.data = bytearray(max(source, 0))
        else:
            self.data = bytearray(source)
        self.user_data = user_data
        self.tag = tag
        self.text = text

    @property
    def size(self) -> int:
        """Number of bytes held."""
        return len(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __bytes__(self) -> bytes:
        return bytes(self.data)

    def __repr__(self) -> str:
        return f"Memory(size={self.size}, tag={self.tag!r}, text={self.text!r})"

    def load_memory(self, src: BytesLike) -> None:
        """Copy ``src`` over the start of the block without changing its size."""
        src = bytes(src)
        if len(src) > len(self.data):
            raise ValueError(
                f"cannot load {len(src)} bytes into a block of {len(self.data)} bytes"
            )
        self.data[: len(src)] = src