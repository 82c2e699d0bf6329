"""A WebSocket client that reads on a background thread and reports through callbacks."""

from __future__ import annotations

import socket
import threading
from typing import Any, Callable, Optional, Union
from urllib.parse import urlsplit

import websocket

ConnectedHandler = Callable[[], None]
ErrorHandler = Callable[[int, str], None]
ReceivedHandler = Callable[[bytes], None]

BytesLike = Union[bytes, bytearray, memoryview]

ERROR_CREATE = -502
ERROR_NOT_CONNECTED = -503
ERROR_SEND = -504
ERROR_CLOSE = -505
ERROR_FAILED = -506
ERROR_RUN = -507

_STATUS_NORMAL = 1000


class WebSocket:
    """A binary WebSocket connection.

    Callbacks: ``on_connected()``, ``on_error(code, message)``,
    ``on_disconnected()`` and ``on_received(data)``. All but send errors
    are called from the connection's reader thread.
    """

    def __init__(
        self,
        on_connected: Optional[ConnectedHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_disconnected: Optional[ConnectedHandler] = None,
        on_received: Optional[ReceivedHandler] = None,
        *,
        connect_timeout: float = 5.0,
    ) -> None:
        self.on_connected = on_connected
        self.on_error = on_error
        self.on_disconnected = on_disconnected
        self.on_received = on_received
        self.connect_timeout = connect_timeout
        self._lock = threading.RLock()
        self._connected = threading.Event()
        self._closing = threading.Event()
        self._ws: Optional[websocket.WebSocket] = None
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "WebSocket":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        """True while the connection is open."""
        return self._connected.is_set()

    def connect(self, uri: str) -> None:
        """Start connecting to ``uri`` in the background, closing any current connection.

        An unusable URI is reported as error -502; a failed connection as -506.
        """
        thread = self._thread
        if self._connected.is_set() or self._closing.is_set() or (
            thread is not None and thread.is_alive()
        ):
            self.disconnect()

        parts = urlsplit(uri)
        if parts.scheme not in ("ws", "wss") or not parts.hostname:
            self._error(ERROR_CREATE, f"Connection creation failed: invalid URI {uri!r}")
            return

        ws = websocket.WebSocket()
        self._ws = ws
        self._thread = threading.Thread(
            target=self._run, args=(ws, uri), name="WebSocket", daemon=True
        )
        self._thread.start()

    def disconnect(self) -> None:
        """Close the connection and wait for the reader thread to end."""
        with self._lock:
            if self._closing.is_set():
                return
            self._closing.set()
        try:
            ws = self._ws
            if ws is not None:
                if self._connected.is_set():
                    try:
                        ws.send_close(_STATUS_NORMAL, b"Closing connection")
                    except (websocket.WebSocketException, OSError):
                        pass
                raw = ws.sock
                if raw is not None:
                    try:
                        raw.shutdown(socket.SHUT_RDWR)
                    except OSError:
                        pass
            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join()
        except Exception as exc:
            self._error(ERROR_CLOSE, f"Close error: {exc}")
        finally:
            self._ws = None
            self._thread = None
            self._connected.clear()
            self._closing.clear()

    def send(self, data: BytesLike) -> None:
        """Send ``data`` as one binary message; problems are reported through ``on_error``."""
        with self._lock:
            ws = self._ws
            if ws is None or not self._connected.is_set() or self._closing.is_set():
                self._error(ERROR_NOT_CONNECTED, "Cannot send: Not connected or closing")
                return
            try:
                ws.send(bytes(data), opcode=websocket.ABNF.OPCODE_BINARY)
            except Exception as exc:
                self._error(ERROR_SEND, f"Send error: {exc}")

    def _error(self, code: int, message: str) -> None:
        handler = self.on_error
        if handler is not None:
            handler(code, message)

    def _run(self, ws: websocket.WebSocket, uri: str) -> None:
        try:
            ws.connect(uri, timeout=self.connect_timeout)
        except Exception:
            ws.shutdown()
            if not self._closing.is_set():
                self._error(ERROR_FAILED, "Connection failed")
            return
        if self._closing.is_set():
            ws.shutdown()
            return

        ws.settimeout(None)
        self._connected.set()
        try:
            handler = self.on_connected
            if handler is not None:
                handler()
            while True:
                opcode, data = ws.recv_data()
                if opcode == websocket.ABNF.OPCODE_CLOSE:
                    break
                payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
                received = self.on_received
                if received is not None:
                    received(payload)
        except (websocket.WebSocketException, OSError):
            pass
        except Exception as exc:
            if not self._closing.is_set():
                self._error(ERROR_RUN, f"Run error: {exc}")
        finally:
            self._connected.clear()
            ws.shutdown()
            closed = self.on_disconnected
            if closed is not None:
                closed()