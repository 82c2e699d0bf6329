"""A background timer that calls a handler every interval of milliseconds."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

TimerHandler = Callable[[Any], None]


class Timer:
    """Calls ``on_timer(timer)`` each time ``interval`` milliseconds have elapsed.

    Elapsed time is checked every ``tick_ms`` milliseconds, so the handler
    fires with at most that much delay.
    """

    def __init__(self, on_timer: Optional[TimerHandler] = None, *, tick_ms: int = 100) -> None:
        self.on_timer = on_timer
        self._tick = max(tick_ms, 1) / 1000
        self._interval = 0
        self._count_ms = 0
        self._old_tick = time.monotonic()
        self._cond = threading.Condition()
        self._running = False
        self._terminated = False
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "Timer":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.terminate_and_wait()

    def start(self, interval: int) -> None:
        """Start (or restart) counting with an interval of ``interval`` milliseconds."""
        with self._cond:
            if self._terminated:
                raise RuntimeError("timer has been terminated")
            self._interval = interval
            self._count_ms = 0
            self._old_tick = time.monotonic()
            self._running = True
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name="Timer", daemon=True)
                self._thread.start()
            self._cond.notify_all()

    def stop(self) -> None:
        """Pause the timer; ``start`` resumes it."""
        with self._cond:
            self._running = False
            self._cond.notify_all()

    def terminate(self) -> None:
        """Stop the timer and end its thread."""
        with self._cond:
            self._running = False
            self._terminated = True
            self._cond.notify_all()

    def terminate_and_wait(self) -> None:
        """Terminate and wait for the thread to end."""
        self.terminate()
        thread = self._thread
        if thread is not None and threading.current_thread() is not thread:
            thread.join()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._running and not self._terminated:
                    self._cond.wait()
                if self._terminated:
                    return
                now = time.monotonic()
                if now > self._old_tick:
                    self._count_ms += int((now - self._old_tick) * 1000)
                self._old_tick = now
                fire = self._count_ms >= self._interval

            if fire:
                handler = self.on_timer
                if handler is not None:
                    handler(self)
                with self._cond:
                    self._count_ms -= self._interval

            with self._cond:
                if self._terminated:
                    return
                self._cond.wait(self._tick)