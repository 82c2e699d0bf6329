"""Queues, workers, timers, packet framing, TCP/UDP/WebSocket networking and small string, file, JSON-option and YUV helpers."""

__version__ = "0.1.0"