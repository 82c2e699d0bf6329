import base64
import hashlib
import socket
import struct
import threading

import pytest

from ryutools.ws_client import WebSocket

GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"


def _frame(opcode, payload):
    head = bytes([0x80 | opcode])
    if len(payload) < 126:
        head += bytes([len(payload)])
    elif len(payload) < 65536:
        head += bytes([126]) + struct.pack("!H", len(payload))
    else:
        head += bytes([127]) + struct.pack("!Q", len(payload))
    return head + payload


class EchoServer:
    def __init__(self):
        self._listener = socket.create_server(("127.0.0.1", 0))
        self.port = self._listener.getsockname()[1]
        self.received = []
        self._conns = []
        self._lock = threading.Lock()
        threading.Thread(target=self._accept_loop, daemon=True).start()

    @property
    def uri(self):
        return f"ws://127.0.0.1:{self.port}/"

    def _accept_loop(self):
        while True:
            try:
                conn, _ = self._listener.accept()
            except OSError:
                return
            with self._lock:
                self._conns.append(conn)
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
                elif length == 127:
                    length = struct.unpack("!Q", reader.read(8))[0]
                mask = reader.read(4) if header[1] & 0x80 else b"\0\0\0\0"
                raw = reader.read(length)
                payload = bytes(b ^ mask[i % 4] for i, b in enumerate(raw))
                if opcode == 8:
                    conn.sendall(_frame(8, payload[:2]))
                    return
                self.received.append(payload)
                conn.sendall(_frame(2, payload))
        except OSError:
            return
        finally:
            conn.close()

    def drop(self):
        with self._lock:
            for conn in self._conns:
                try:
                    conn.shutdown(socket.SHUT_RDWR)
                except OSError:
                    pass

    def close(self):
        self._listener.close()
        self.drop()


class Events:
    def __init__(self):
        self.connected = threading.Event()
        self.disconnected = threading.Event()
        self.errors = []
        self.error_seen = threading.Event()
        self.received = []
        self.got = threading.Event()

    def on_error(self, code, message):
        self.errors.append((code, message))
        self.error_seen.set()

    def on_received(self, data):
        self.received.append(data)
        self.got.set()

    def handlers(self):
        return {
            "on_connected": self.connected.set,
            "on_error": self.on_error,
            "on_disconnected": self.disconnected.set,
            "on_received": self.on_received,
        }


@pytest.fixture
def server():
    srv = EchoServer()
    yield srv
    srv.close()


@pytest.fixture
def events():
    return Events()


def _unused_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_send_without_connection_reports_error(events):
    ws = WebSocket(**events.handlers())
    ws.send(b"hello")
    assert events.errors == [(-503, "Cannot send: Not connected or closing")]
    assert ws.is_connected is False


def test_invalid_uri_reports_creation_error(events):
    ws = WebSocket(**events.handlers())
    ws.connect("http://127.0.0.1:1/")
    assert [code for code, _ in events.errors] == [-502]
    assert ws.is_connected is False


def test_refused_connection_reports_failure(events):
    ws = WebSocket(**events.handlers())
    ws.connect(f"ws://127.0.0.1:{_unused_port()}/")
    assert events.error_seen.wait(5)
    assert events.errors == [(-506, "Connection failed")]
    assert not events.connected.is_set()
    ws.disconnect()
    assert ws.is_connected is False


def test_echo_round_trip(server, events):
    with WebSocket(**events.handlers()) as ws:
        ws.connect(server.uri)
        assert events.connected.wait(5)
        assert ws.is_connected is True
        ws.send(b"hello")
        assert events.got.wait(5)
        assert events.received == [b"hello"]
        assert server.received == [b"hello"]


def test_large_message_round_trip(server, events):
    payload = bytes(range(256)) * 400
    with WebSocket(**events.handlers()) as ws:
        ws.connect(server.uri)
        assert events.connected.wait(5)
        ws.send(payload)
        assert events.got.wait(5)
        assert events.received == [payload]


def test_server_drop_reports_disconnect(server, events):
    ws = WebSocket(**events.handlers())
    ws.connect(server.uri)
    assert events.connected.wait(5)
    server.drop()
    assert events.disconnected.wait(5)
    assert ws.is_connected is False
    ws.disconnect()


def test_disconnect_closes_connection(server, events):
    ws = WebSocket(**events.handlers())
    ws.connect(server.uri)
    assert events.connected.wait(5)
    ws.disconnect()
    assert events.disconnected.is_set()
    assert ws.is_connected is False
    ws.send(b"late")
    assert events.errors[-1][0] == -503