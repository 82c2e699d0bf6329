"""A TCP server that accepts connections and reports their data on one background thread."""

from __future__ import annotations

import selectors
import socket
import struct
import threading
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .queues import ThreadQueue

PACKET_SIZE = 4096

ConnectionEvent = Callable[[Any, int], None]
ReceivedEvent = Callable[[Any, int, bytes], None]

_TASK_START = 1
_TASK_STOP = 2
_POLL_SECONDS = 0.005


def create_and_bind(port: int) -> socket.socket:
    """Return a TCP socket bound to ``port`` on every interface.

    Raises OSError if no address can be bound.
    """
    try:
        infos = socket.getaddrinfo(
            None, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
        )
    except socket.gaierror as exc:
        raise OSError(f"getaddrinfo: {exc}") from exc
    for family, sock_type, proto, _, address in infos:
        try:
            sock = socket.socket(family, sock_type, proto)
        except OSError:
            continue
        try:
            sock.bind(address)
        except OSError:
            sock.close()
            continue
        return sock
    raise OSError("Could not bind")


def _set_socket_options(sock: socket.socket) -> None:
    sock.setblocking(False)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))


@dataclass
class _Task:
    kind: int
    port: int = 0
    done: Future = field(default_factory=Future)


class SocketServer:
    """Listens on a port; reports connections by their file descriptor.

    Callbacks run on the server's thread: ``on_connected(server, fd)``,
    ``on_disconnected(server, fd)`` and ``on_received(server, fd, data)``.
    """

    def __init__(
        self,
        on_connected: Optional[ConnectionEvent] = None,
        on_disconnected: Optional[ConnectionEvent] = None,
        on_received: Optional[ReceivedEvent] = None,
    ) -> None:
        self.on_connected = on_connected
        self.on_disconnected = on_disconnected
        self.on_received = on_received
        self._tasks: ThreadQueue[_Task] = ThreadQueue()
        self._selector = selectors.DefaultSelector()
        self._listener: Optional[socket.socket] = None
        self._connections: Dict[int, socket.socket] = {}
        self._port = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="SocketServer", daemon=True)
        self._thread.start()

    def __enter__(self) -> "SocketServer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.terminate()

    @property
    def is_started(self) -> bool:
        """True while the server is listening."""
        return self._listener is not None

    @property
    def port(self) -> int:
        """The port being listened on, or 0 when stopped."""
        return self._port if self._listener is not None else 0

    def start(self, port: int) -> None:
        """Start listening on ``port``; does nothing if already started.

        Raises OSError if the port cannot be bound or listened on.
        """
        self._submit(_Task(_TASK_START, port))

    def stop(self) -> None:
        """Stop listening for new connections."""
        self._submit(_Task(_TASK_STOP))

    def terminate(self) -> None:
        """Stop the server thread and close every socket."""
        self._stop.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def _submit(self, task: _Task) -> None:
        if threading.current_thread() is self._thread:
            self._execute(task)
            return
        if self._stop.is_set():
            raise RuntimeError("server has been terminated")
        self._tasks.push(task)
        try:
            task.done.result()
        except CancelledError:
            raise RuntimeError("server was terminated before the request ran") from None

    def _execute(self, task: _Task) -> None:
        if task.kind == _TASK_START:
            self._do_start(task.port)
        else:
            self._do_stop()

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                task = self._tasks.pop()
                if task is None:
                    if self._listener is not None:
                        self._process_events()
                    else:
                        self._stop.wait(_POLL_SECONDS)
                    continue
                try:
                    self._execute(task)
                except Exception as exc:
                    task.done.set_exception(exc)
                else:
                    task.done.set_result(None)
        finally:
            while (task := self._tasks.pop()) is not None:
                task.done.cancel()
            self._do_stop()
            for sock in list(self._connections.values()):
                self._forget(sock)
            self._selector.close()

    def _do_start(self, port: int) -> None:
        if self._listener is not None:
            return
        sock = create_and_bind(port)
        try:
            _set_socket_options(sock)
            sock.listen(socket.SOMAXCONN)
            self._selector.register(sock, selectors.EVENT_READ)
        except OSError:
            sock.close()
            raise
        self._port = sock.getsockname()[1]
        self._listener = sock

    def _do_stop(self) -> None:
        sock = self._listener
        if sock is None:
            return
        self._listener = None
        self._selector.unregister(sock)
        sock.close()

    def _process_events(self) -> None:
        for key, _ in self._selector.select(_POLL_SECONDS):
            sock = key.fileobj
            if sock is self._listener:
                self._accept_connections()
            elif isinstance(sock, socket.socket) and sock.fileno() in self._connections:
                self._receive(sock)

    def _accept_connections(self) -> None:
        while self._listener is not None:
            try:
                conn, _ = self._listener.accept()
            except OSError:
                break
            _set_socket_options(conn)
            self._selector.register(conn, selectors.EVENT_READ)
            fd = conn.fileno()
            self._connections[fd] = conn
            handler = self.on_connected
            if handler is not None:
                handler(self, fd)

    def _receive(self, sock: socket.socket) -> None:
        fd = sock.fileno()
        closed = False
        while True:
            try:
                chunk = sock.recv(PACKET_SIZE)
            except (BlockingIOError, InterruptedError):
                break
            except OSError:
                closed = True
                break
            if not chunk:
                closed = True
                break
            handler = self.on_received
            if handler is not None:
                handler(self, fd, chunk)
        if closed:
            self._close_connection(sock)

    def _close_connection(self, sock: socket.socket) -> None:
        handler = self.on_disconnected
        if handler is not None:
            handler(self, sock.fileno())
        self._forget(sock)

    def _forget(self, sock: socket.socket) -> None:
        self._connections.pop(sock.fileno(), None)
        try:
            self._selector.unregister(sock)
        except (KeyError, ValueError):
            pass
        sock.close()