# ryutools

Small building blocks for threaded and networked programs.

## Modules

- `ryutools.queues` — `ThreadQueue`, a locked FIFO whose `pop`, `front` and `back` return `None` when it is empty, and `SuspensionQueue`, whose `pop` waits until an item arrives and returns `None` once `terminate()` has been called on an empty queue.
- `ryutools.worker` — `Worker`, which runs queued `WorkerTask`s one after another on a single background thread, calling `on_task(task, text, data, size, tag)` for each and `on_terminated(worker)` when the thread ends.
- `ryutools.timer` — `Timer`, which calls `on_timer(timer)` each time *interval* milliseconds have passed; `start`, `stop`, `terminate` and `terminate_and_wait` control it.
- `ryutools.wait_free_list` — `WaitFreeList`, a doubly linked list of `Node`s; `add` puts an item at the head and iteration runs from the newest item to the oldest.
- `ryutools.packets` — `Packet`, `create_packet` and `PacketReader`. A packet on the wire is a little-endian 16-bit total size (header included), a type byte, then the payload. `PacketReader` collects received bytes and returns whole packets as they complete.
- `ryutools.tcp_client` — `TcpClient`, which connects, sends and receives on one background thread and reports through `on_connected`, `on_disconnected`, `on_received`, `on_error` and `on_repeat`. Sends larger than 32 KiB are reported as error -4.
- `ryutools.socket_server` — `SocketServer`, a selector-driven TCP server that reports connections by file descriptor through `on_connected`, `on_disconnected` and `on_received`; `create_and_bind(port)` gives a bound socket.
- `ryutools.udp_socket` — `UdpSocket`, a datagram sender with a shared `UdpSocket.instance()`.
- `ryutools.ws_client` — `WebSocket`, a binary WebSocket client that reads on a background thread.
- `ryutools.zombie_socket` — `ZombieSocket`, which wraps `WebSocket` and reconnects by itself after a failure, a close, or a silence of `health_limit` health intervals (by default 6 × 5000 ms), waiting `reconnect_delay_ms` (3000 ms) before each attempt.
- `ryutools.strg` — `delete_left`, `delete_left_plus`, `delete_right`, `delete_right_plus`, `set_last_string` and `random_string`.
- `ryutools.disk` — `file_exists`, `file_size`, `temp_path`, `force_directories`, `save_text_to_file` and `load_file_as_text`.
- `ryutools.options` — `StartOption`, typed lookups into a JSON object where a missing or mistyped value gives the default.
- `ryutools.yuv` — `rgb_to_yuv420` and `i420_to_argb` for converting between packed B, G, R(, A) bitmaps and I420 planes, and `clip`.
- `ryutools.base` — `Memory`, a byte block with `user_data`, `tag` and `text` attached, and the callback type aliases.

## Install

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Examples

Packet framing:

```python
from ryutools.packets import PacketReader, create_packet

reader = PacketReader()
reader.write(create_packet(1, b"hello").to_bytes())
if reader.can_read():
    packet = reader.read()
    print(packet.packet_type, packet.data)   # 1 b'hello'
```

Sequential background work:

```python
from ryutools.worker import Worker

with Worker(on_task=lambda task, text, data, size, tag: print(task, text)) as worker:
    worker.add(1, text="hello")
```

A queue that the consumer waits on:

```python
from ryutools.queues import SuspensionQueue

queue = SuspensionQueue()
queue.push("task")
item = queue.pop()
```

JSON options with defaults:

```python
from ryutools.options import StartOption

options = StartOption()
options.parse_json('{"width": 1920, "with-cursor": true}')
width = options.get_int("width", 0)            # 1920
cursor = options.get_bool("with-cursor", False) # True
height = options.get_int("height", 0)          # 0
```

String helpers:

```python
from ryutools.strg import delete_right, set_last_string

folder = delete_right("C:\\data\\file.txt", "\\", False)   # "C:\\data\\"
path = set_last_string("/tmp", "/")                        # "/tmp/"
```

## What it does not do

This is a library only: it installs no command-line program. It has no trace or logging helper of its own; use the standard `logging` module. Audio and video capture, encoding and display are not part of it; `ryutools.yuv` only converts pixel data in memory.