"""A WebSocket that keeps reconnecting until it is told to stop."""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import Any, Callable, Optional, Union

from .timer import Timer
from .worker import Worker
from .ws_client import WebSocket

ConnectedHandler = Callable[[], None]
ErrorHandler = Callable[[int, str], None]
ReceivedHandler = Callable[[bytes], None]
SocketFactory = Callable[[], Any]

BytesLike = Union[bytes, bytearray, memoryview]

ERROR_CONNECT = -100
ERROR_SEND = -102
ERROR_HEALTH = -104


class Task(IntEnum):
    CONNECT = 1
    RECONNECT = 2
    DISCONNECT = 3
    SEND = 4


class ZombieSocket:
    """Keeps a WebSocket connection alive.

    A connection that fails, closes, or receives nothing for
    ``health_limit`` health intervals is reopened after
    ``reconnect_delay_ms`` milliseconds, for as long as the socket is running.
    Callbacks: ``on_connected()``, ``on_error(code, message)``,
    ``on_disconnected()`` and ``on_received(data)``.
    """

    def __init__(
        self,
        on_connected: Optional[ConnectedHandler] = None,
        on_error: Optional[ErrorHandler] = None,
        on_disconnected: Optional[ConnectedHandler] = None,
        on_received: Optional[ReceivedHandler] = None,
        *,
        health_interval_ms: int = 5000,
        health_limit: int = 6,
        reconnect_delay_ms: int = 3000,
        socket_factory: Optional[SocketFactory] = None,
    ) -> None:
        self.on_connected = on_connected
        self.on_error = on_error
        self.on_disconnected = on_disconnected
        self.on_received = on_received
        self._factory: SocketFactory = socket_factory or WebSocket
        self._health_interval_ms = health_interval_ms
        self._health_limit = health_limit
        self._reconnect_delay_ms = reconnect_delay_ms
        self._ws: Any = None
        self._uri = ""
        self._running = False
        self._connected = False
        self._closed = False
        self._health_count = 0
        self._count_lock = threading.Lock()
        self._worker_thread: Optional[threading.Thread] = None

        self._worker = Worker(on_task=self._on_task)
        self._reconnect_worker = Worker(on_task=self._on_reconnect_task)
        self._health_timer = Timer(
            on_timer=self._on_health_timer, tick_ms=min(100, max(health_interval_ms, 1))
        )
        self._health_timer.start(health_interval_ms)

    def __enter__(self) -> "ZombieSocket":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def uri(self) -> str:
        """The address given to the last ``connect``."""
        return self._uri

    @property
    def is_running(self) -> bool:
        """True between ``connect`` and ``disconnect``."""
        return self._running

    @property
    def is_connected(self) -> bool:
        """True while a connection is open."""
        return self._connected

    def connect(self, uri: str) -> None:
        """Start keeping a connection to ``uri`` open."""
        self._uri = uri
        self._running = True
        self._connected = False
        self._reset_health()
        self._worker.add(Task.CONNECT)

    def disconnect(self) -> None:
        """Stop reconnecting and close the connection."""
        self._running = False
        self._worker.add(Task.DISCONNECT)

    def send(self, data: BytesLike) -> None:
        """Queue ``data`` for sending; it is dropped while not connected."""
        if not self._connected:
            return
        payload = bytes(data)
        self._worker.add(Task.SEND, data=payload, size=len(payload))

    def close(self) -> None:
        """Disconnect and stop every background thread."""
        if self._closed:
            return
        self._closed = True
        self._running = False
        if threading.current_thread() is self._worker_thread:
            self._do_disconnect()
        else:
            done = threading.Event()
            self._worker.add(Task.DISCONNECT, data=done)
            done.wait()
        self._health_timer.terminate_and_wait()
        self._reconnect_worker.terminate_and_wait()
        self._worker.terminate_and_wait()

    def _error(self, code: int, message: str) -> None:
        handler = self.on_error
        if handler is not None:
            handler(code, message)

    def _reset_health(self) -> None:
        with self._count_lock:
            self._health_count = 0

    def _on_health_timer(self, timer: Any) -> None:
        with self._count_lock:
            self._health_count += 1
            expired = self._health_count >= self._health_limit
            if expired:
                self._health_count = 0
        if not expired:
            return
        self._connected = False
        seconds = self._health_interval_ms * self._health_limit / 1000
        self._error(ERROR_HEALTH, f"No messages received for {seconds:g} seconds")
        self._worker.add(Task.RECONNECT)

    def _on_task(self, task: int, text: str, data: Any, size: int, tag: int) -> None:
        self._worker_thread = threading.current_thread()
        if task == Task.CONNECT:
            self._do_connect()
        elif task == Task.RECONNECT:
            self._reconnect_worker.add(0)
        elif task == Task.DISCONNECT:
            self._do_disconnect()
            if isinstance(data, threading.Event):
                data.set()
        elif task == Task.SEND and data is not None:
            self._do_send(data)

    def _on_reconnect_task(self, task: int, text: str, data: Any, size: int, tag: int) -> None:
        self._reset_health()
        self._reconnect_worker.sleep(self._reconnect_delay_ms)
        if self._running:
            self._worker.add(Task.CONNECT)

    def _create_socket(self) -> Any:
        ws = self._factory()
        ws.on_connected = self._ws_connected
        ws.on_error = self._ws_error
        ws.on_disconnected = self._ws_disconnected
        ws.on_received = self._ws_received
        return ws

    @staticmethod
    def _detach(ws: Any) -> None:
        ws.on_connected = None
        ws.on_error = None
        ws.on_disconnected = None
        ws.on_received = None

    def _ws_connected(self) -> None:
        self._connected = True
        self._reset_health()
        handler = self.on_connected
        if handler is not None:
            handler()

    def _ws_error(self, code: int, message: str) -> None:
        self._error(code, message)
        if self._running:
            self._connected = False
            self._worker.add(Task.RECONNECT)

    def _ws_disconnected(self) -> None:
        self._connected = False
        handler = self.on_disconnected
        if handler is not None:
            handler()
        if self._running:
            self._worker.add(Task.RECONNECT)

    def _ws_received(self, data: bytes) -> None:
        self._reset_health()
        handler = self.on_received
        if handler is not None:
            handler(data)

    def _do_connect(self) -> None:
        if self._connected:
            return
        try:
            old = self._ws
            self._ws = None
            if old is not None:
                self._detach(old)
                old.disconnect()
            ws = self._create_socket()
            self._ws = ws
            ws.connect(self._uri)
        except Exception as exc:
            self._connected = False
            self._error(ERROR_CONNECT, f"Connection error: {exc}")
            self._worker.add(Task.RECONNECT)

    def _do_disconnect(self) -> None:
        self._connected = False
        ws = self._ws
        self._ws = None
        if ws is None:
            return
        try:
            ws.disconnect()
        except Exception:
            pass

    def _do_send(self, data: bytes) -> None:
        ws = self._ws
        if not self._connected or ws is None:
            return
        try:
            ws.send(data)
        except Exception as exc:
            self._error(ERROR_SEND, f"Send error: {exc}")