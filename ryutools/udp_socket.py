"""A shared UDP socket for sending text datagrams to one address."""

from __future__ import annotations

import socket
import threading
from typing import Optional, Tuple, Union

BytesLike = Union[bytes, bytearray, memoryview]


class UdpSocket:
    """A UDP sender; ``UdpSocket.instance()`` returns the process-wide one."""

    _instance: Optional["UdpSocket"] = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._address: Optional[Tuple[str, int]] = None

    @classmethod
    def instance(cls) -> "UdpSocket":
        """Return the shared socket, creating it on first use or after it was closed."""
        with cls._instance_lock:
            current = cls._instance
            if current is None or current.closed:
                current = cls()
                cls._instance = current
            return current

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """The destination set by ``set_address``, if any."""
        return self._address

    @property
    def closed(self) -> bool:
        """True once the socket has been closed."""
        return self._sock.fileno() == -1

    def set_address(self, ip: str, port: int) -> None:
        """Send future datagrams to the IPv4 address ``ip`` on ``port``.

        Raises OSError for an invalid address and ValueError for an invalid port.
        """
        socket.inet_pton(socket.AF_INET, ip)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port {port} is out of range")
        self._address = (ip, port)

    def send_text(self, text: Union[str, BytesLike]) -> int:
        """Send ``text`` (UTF-8 encoded if a string) as one datagram; return bytes sent."""
        if self._address is None:
            raise RuntimeError("no destination address has been set")
        payload = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        return self._sock.sendto(payload, self._address)

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def __enter__(self) -> "UdpSocket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()