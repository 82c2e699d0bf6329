"""A TCP client whose connecting, sending and receiving run on one background thread."""

from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional, Union

from .packets import PACKET_LIMIT
from .queues import ThreadQueue

SocketEvent = Callable[[], None]
ReceivedEvent = Callable[[bytes], None]
ErrorEvent = Callable[[Any, int, str], None]

BytesLike = Union[bytes, bytearray, memoryview]

_RECEIVE_SIZE = 4096
_IDLE_SLEEP_MS = 5


class _Kind(Enum):
    CONNECT = auto()
    DISCONNECT = auto()
    SEND = auto()


@dataclass(frozen=True)
class _Job:
    kind: _Kind
    host: str = ""
    port: int = 0
    data: bytes = b""


class TcpClient:
    """Connects to a server and streams bytes in both directions.

    Callbacks run on the client's thread: ``on_connected()``,
    ``on_disconnected()`` (when a send fails), ``on_received(data)``,
    ``on_error(client, code, message)`` and ``on_repeat()`` (whenever a
    receive round finds nothing).
    """

    def __init__(
        self,
        on_connected: Optional[SocketEvent] = None,
        on_disconnected: Optional[SocketEvent] = None,
        on_received: Optional[ReceivedEvent] = None,
        on_error: Optional[ErrorEvent] = None,
        on_repeat: Optional[SocketEvent] = None,
        *,
        connect_timeout: float = 5.0,
    ) -> None:
        self.on_connected = on_connected
        self.on_disconnected = on_disconnected
        self.on_received = on_received
        self.on_error = on_error
        self.on_repeat = on_repeat
        self.connect_timeout = connect_timeout
        self._jobs: ThreadQueue[_Job] = ThreadQueue()
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._idle_count = 0
        self._thread = threading.Thread(target=self._run, name="TcpClient", daemon=True)
        self._thread.start()

    def __enter__(self) -> "TcpClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.terminate()

    @property
    def is_connected(self) -> bool:
        """True while a connection is open."""
        return self._sock is not None

    @property
    def idle_count(self) -> int:
        """Milliseconds (in steps of 5) since data was last received."""
        return self._idle_count

    def connect(self, host: str, port: int) -> None:
        """Queue a connection to ``host``:``port``, dropping any current one."""
        self._push(_Job(_Kind.CONNECT, host=host, port=port))

    def disconnect(self) -> None:
        """Queue closing the connection."""
        self._push(_Job(_Kind.DISCONNECT))

    def send_data(self, data: BytesLike) -> None:
        """Queue ``data`` for sending; more than PACKET_LIMIT bytes is reported as error -4."""
        payload = bytes(data)
        if len(payload) > PACKET_LIMIT:
            self._error(-4, f"Packet size is limited to {PACKET_LIMIT} bytes.")
            return
        self._push(_Job(_Kind.SEND, data=payload))

    def send_text(self, text: str) -> None:
        """Queue ``text`` for sending as UTF-8."""
        self._push(_Job(_Kind.SEND, data=text.encode("utf-8")))

    def terminate(self) -> None:
        """Close the connection and stop the client's thread."""
        self.disconnect()
        self._stop.set()
        self._wake.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def _push(self, job: _Job) -> None:
        self._jobs.push(job)
        self._wake.set()

    def _error(self, code: int, message: str) -> None:
        handler = self.on_error
        if handler is not None:
            handler(self, code, message)

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                job = self._jobs.pop()
                if job is not None:
                    self._handle(job)
                    continue
                if self._receive():
                    self._idle_count = 0
                else:
                    self._idle_count += _IDLE_SLEEP_MS
                    handler = self.on_repeat
                    if handler is not None:
                        handler()
                    if self._wake.wait(_IDLE_SLEEP_MS / 1000):
                        self._wake.clear()
        finally:
            self._disconnect()

    def _handle(self, job: _Job) -> None:
        if job.kind is _Kind.CONNECT:
            self._disconnect()
            self._connect(job.host, job.port)
        elif job.kind is _Kind.DISCONNECT:
            self._disconnect()
        else:
            self._send(job.data)

    def _connect(self, host: str, port: int) -> None:
        if not host:
            self._error(-1, "gethostbyname, can't find domain.")
            return
        try:
            address = socket.gethostbyname(host)
        except (OSError, UnicodeError):
            self._error(-1, "gethostbyname, can't find domain.")
            return
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError:
            self._error(-2, "Can't open socket stream.")
            return
        try:
            sock.settimeout(self.connect_timeout)
            sock.connect((address, port))
            sock.setblocking(False)
        except (OSError, OverflowError):
            sock.close()
            self._error(-3, "can't connect to server.")
            return
        self._sock = sock
        handler = self.on_connected
        if handler is not None:
            handler()

    def _disconnect(self) -> None:
        sock = self._sock
        if sock is None:
            return
        self._sock = None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()

    def _send(self, data: bytes) -> None:
        sock = self._sock
        if sock is None:
            return
        try:
            sock.settimeout(self.connect_timeout)
            sock.sendall(data)
            sock.setblocking(False)
        except OSError:
            self._disconnect()
            handler = self.on_disconnected
            if handler is not None:
                handler()

    def _receive(self) -> bool:
        sock = self._sock
        if sock is None:
            return False
        received = False
        while True:
            try:
                chunk = sock.recv(_RECEIVE_SIZE)
            except OSError:
                break
            if not chunk:
                break
            received = True
            handler = self.on_received
            if handler is not None:
                handler(chunk)
        return received