"""Length-prefixed packets and a reader that splits a byte stream into them.

A packet on the wire is a little-endian unsigned 16-bit total size (header
included), a one-byte packet type, then the payload.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional, Union

HEADER_SIZE = 3
MAX_CONNECTION = 4096
PACKET_LIMIT = 32 * 1024

ERROR_CONNECT = -1
ERROR_READ = -2
ERROR_WRITE = -3

_HEADER = struct.Struct("<HB")
_MAX_PACKET_SIZE = 0xFFFF

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class Packet:
    """A packet type and its payload."""

    packet_type: int
    data: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= self.packet_type <= 0xFF:
            raise ValueError(f"packet type {self.packet_type} does not fit in one byte")
        object.__setattr__(self, "data", bytes(self.data))
        if self.packet_size > _MAX_PACKET_SIZE:
            raise ValueError(
                f"packet of {self.packet_size} bytes exceeds {_MAX_PACKET_SIZE} bytes"
            )

    @property
    def packet_size(self) -> int:
        """Total size on the wire, header included."""
        return len(self.data) + HEADER_SIZE

    @property
    def data_size(self) -> int:
        """Size of the payload."""
        return len(self.data)

    @property
    def text(self) -> str:
        """The payload as text, up to the first NUL byte."""
        return self.data.split(b"\0", 1)[0].decode("utf-8", errors="replace")

    def to_bytes(self) -> bytes:
        """Return the wire form of the packet."""
        return _HEADER.pack(self.packet_size, self.packet_type) + self.data

    @classmethod
    def from_bytes(cls, raw: BytesLike) -> "Packet":
        """Parse one complete packet from its wire form."""
        raw = bytes(raw)
        if len(raw) < HEADER_SIZE:
            raise ValueError("packet is shorter than its header")
        size, packet_type = _HEADER.unpack_from(raw)
        if size != len(raw):
            raise ValueError(f"header says {size} bytes, {len(raw)} were given")
        return cls(packet_type, raw[HEADER_SIZE:])


def create_packet(packet_type: int, data: Union[str, BytesLike] = b"") -> Packet:
    """Build a packet from bytes, or from text encoded as UTF-8."""
    payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    return Packet(packet_type, payload)


class PacketReader:
    """Collects received bytes and hands back whole packets as they complete."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def buffered(self) -> int:
        """Number of bytes waiting in the buffer."""
        return len(self._buffer)

    def clear(self) -> None:
        """Drop every buffered byte."""
        self._buffer.clear()

    def write(self, data: BytesLike) -> None:
        """Append received bytes to the buffer."""
        data = bytes(data)
        if not data:
            return
        if len(self._buffer) + len(data) > PACKET_LIMIT * 2:
            raise ValueError(
                f"packet buffer would exceed {PACKET_LIMIT * 2} bytes"
            )
        self._buffer.extend(data)

    def can_read(self) -> bool:
        """Return True if a whole packet is buffered."""
        if len(self._buffer) < HEADER_SIZE:
            return False
        (size,) = struct.unpack_from("<H", self._buffer)
        return size <= len(self._buffer)

    def read(self) -> Optional[Packet]:
        """Remove and return the next whole packet, or None if none is complete."""
        if not self.can_read():
            return None
        (size,) = struct.unpack_from("<H", self._buffer)
        if size < HEADER_SIZE:
            raise ValueError(f"malformed packet header: size {size}")
        raw = bytes(self._buffer[:size])
        del self._buffer[:size]
        return Packet.from_bytes(raw)