import base64
import hashlib
import socket
import struct
import threading
import time

import pytest

from ryutools.zombie_socket import ZombieSocket

GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeSocket:
    def __init__(self):
        self.on_connected = None
        self.on_error = None
        self.on_disconnected = None
        self.on_received = None
        self.uris = []
        self.sent = []
        self.disconnected = threading.Event()

    def connect(self, uri):
        self.uris.append(uri)

    def disconnect(self):
        self.disconnected.set()
        handler = self.on_disconnected
        if handler is not None:
            handler()

    def send(self, data):
        self.sent.append(bytes(data))

    def open(self):
        self.on_connected()


class Factory:
    def __init__(self):
        self.sockets = []

    def __call__(self):
        sock = FakeSocket()
        self.sockets.append(sock)
        return sock


class Events:
    def __init__(self):
        self.connected = 0
        self.disconnected = 0
        self.errors = []
        self.received = []

    def on_connected(self):
        self.connected += 1

    def on_disconnected(self):
        self.disconnected += 1

    def on_error(self, code, message):
        self.errors.append((code, message))

    def on_received(self, data):
        self.received.append(data)


@pytest.fixture
def make_zombie():
    created = []

    def build(events, **options):
        options.setdefault("health_interval_ms", 60000)
        options.setdefault("reconnect_delay_ms", 10)
        zombie = ZombieSocket(
            on_connected=events.on_connected,
            on_error=events.on_error,
            on_disconnected=events.on_disconnected,
            on_received=events.on_received,
            **options,
        )
        created.append(zombie)
        return zombie

    yield build
    for zombie in created:
        zombie.close()


URI = "ws://localhost:9000/"


def _connected_fake(make_zombie, events, factory):
    zombie = make_zombie(events, socket_factory=factory)
    zombie.connect(URI)
    assert _wait_until(lambda: factory.sockets and factory.sockets[0].uris)
    factory.sockets[0].open()
    return zombie


def test_connect_creates_socket_with_uri(make_zombie):
    events, factory = Events(), Factory()
    zombie = make_zombie(events, socket_factory=factory)
    zombie.connect(URI)
    assert _wait_until(lambda: factory.sockets and factory.sockets[0].uris)
    assert factory.sockets[0].uris == [URI]
    assert zombie.is_running is True
    assert zombie.uri == URI


def test_open_marks_connected_and_send_forwards(make_zombie):
    events, factory = Events(), Factory()
    zombie = _connected_fake(make_zombie, events, factory)
    assert zombie.is_connected is True
    assert events.connected == 1
    zombie.send(b"abc")
    assert _wait_until(lambda: factory.sockets[0].sent == [b"abc"])


def test_send_before_connected_is_dropped(make_zombie):
    events, factory = Events(), Factory()
    zombie = make_zombie(events, socket_factory=factory)
    zombie.connect(URI)
    assert _wait_until(lambda: factory.sockets and factory.sockets[0].uris)
    zombie.send(b"early")
    factory.sockets[0].open()
    zombie.send(b"late")
    assert _wait_until(lambda: factory.sockets[0].sent)
    assert factory.sockets[0].sent == [b"late"]


def test_received_data_passes_through(make_zombie):
    events, factory = Events(), Factory()
    _connected_fake(make_zombie, events, factory)
    factory.sockets[0].on_received(b"data")
    assert events.received == [b"data"]


def test_server_disconnect_triggers_reconnect(make_zombie):
    events, factory = Events(), Factory()
    zombie = _connected_fake(make_zombie, events, factory)
    factory.sockets[0].on_disconnected()
    assert events.disconnected == 1
    assert zombie.is_connected is False
    assert _wait_until(lambda: len(factory.sockets) == 2 and factory.sockets[1].uris)
    assert factory.sockets[1].uris == [URI]


def test_error_triggers_reconnect(make_zombie):
    events, factory = Events(), Factory()
    _connected_fake(make_zombie, events, factory)
    factory.sockets[0].on_error(-506, "Connection failed")
    assert events.errors[0] == (-506, "Connection failed")
    assert _wait_until(lambda: len(factory.sockets) >= 2)
    assert factory.sockets[0].disconnected.is_set()


def test_disconnect_stops_reconnecting(make_zombie):
    events, factory = Events(), Factory()
    zombie = _connected_fake(make_zombie, events, factory)
    zombie.disconnect()
    assert factory.sockets[0].disconnected.wait(5)
    assert zombie.is_running is False
    time.sleep(0.2)
    assert len(factory.sockets) == 1
    assert zombie.is_connected is False


def test_silence_reports_health_error_and_reconnects(make_zombie):
    events, factory = Events(), Factory()
    _connected_fake(make_zombie, events, factory)
    zombie_events = events
    make_zombie  # keep fixture referenced
    assert _wait_until(lambda: True)
    zombie = make_zombie(
        zombie_events, socket_factory=factory, health_interval_ms=20, health_limit=2
    )
    zombie.connect(URI)
    assert _wait_until(lambda: any(code == -104 for code, _ in events.errors))
    message = next(msg for code, msg in events.errors if code == -104)
    assert message.startswith("No messages received for")


def test_close_disconnects(make_zombie):
    events, factory = Events(), Factory()
    zombie = _connected_fake(make_zombie, events, factory)
    zombie.close()
    assert factory.sockets[0].disconnected.is_set()
    assert zombie.is_running is False
    assert zombie.is_connected is False


def _frame(opcode, payload):
    head = bytes([0x80 | opcode])
    if len(payload) < 126:
        head += bytes([len(payload)])
    else:
        head += bytes([126]) + struct.pack("!H", len(payload))
    return head + payload


class EchoServer:
    def __init__(self):
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.port = self._listener.getsockname()[1]
        threading.Thread(target=self._accept_loop, daemon=True).start()

    def _accept_loop(self):
        while True:
            try:
                conn, _ = self._listener.accept()
            except OSError:
                return
            threading.Thread(target=self._serve, args=(conn,), daemon=True).start()

    def _serve(self, conn):
        try:
            buf = b""
            while b"\r\n\r\n" not in buf:
                chunk = conn.recv(4096)
                if not chunk:
                    return
                buf += chunk
            head = buf.split(b"\r\n\r\n", 1)[0].decode()
            key = next(
                line.split(":", 1)[1].strip()
                for line in head.split("\r\n")[1:]
                if line.lower().startswith("sec-websocket-key:")
            )
            accept = base64.b64encode(hashlib.sha1((key + GUID).encode()).digest()).decode()
            conn.sendall(
                (
                    "HTTP/1.1 101 Switching Protocols\r\n"
                    "Upgrade: websocket\r\n"
                    "Connection: Upgrade\r\n"
                    f"Sec-WebSocket-Accept: {accept}\r\n\r\n"
                ).encode()
            )
            reader = conn.makefile("rb")
            while True:
                header = reader.read(2)
                if len(header) < 2:
                    return
                opcode = header[0] & 0x0F
                length = header[1] & 0x7F
                if length == 126:
                    length = struct.unpack("!H", reader.read(2))[0]
                mask = reader.read(4) if header[1] & 0x80 else b"\0\0\0\0"
                raw = reader.read(length)
                payload = bytes(b ^ mask[i % 4] for i, b in enumerate(raw))
                if opcode == 8:
                    conn.sendall(_frame(8, payload[:2]))
                    return
                conn.sendall(_frame(2, payload))
        except OSError:
            return
        finally:
            conn.close()

    def close(self):
        self._listener.close()


def test_real_echo_round_trip(make_zombie):
    server = EchoServer()
    try:
        events = Events()
        zombie = make_zombie(events)
        zombie.connect(f"ws://127.0.0.1:{server.port}/")
        assert _wait_until(lambda: zombie.is_connected)
        zombie.send(b"ping")
        assert _wait_until(lambda: events.received == [b"ping"])
        assert events.connected == 1
    finally:
        server.close()