"""A single background thread that runs queued tasks one after another."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .queues import SuspensionQueue

TaskHandler = Callable[[int, str, Any, int, int], None]
TerminatedHandler = Callable[[Any], None]


@dataclass(frozen=True)
class WorkerTask:
    """A unit of work: its kind, text, data, data size and tag."""

    task: int
    text: str = ""
    data: Any = None
    size: int = 0
    tag: int = 0


class Worker:
    """Serialises requests from many threads onto one worker thread.

    ``on_task(task, text, data, size, tag)`` is called on the worker thread
    for each queued task, in order. ``on_terminated(worker)`` is called when
    the thread ends.
    """

    def __init__(
        self,
        on_task: Optional[TaskHandler] = None,
        on_terminated: Optional[TerminatedHandler] = None,
    ) -> None:
        self.on_task = on_task
        self.on_terminated = on_terminated
        self._queue: SuspensionQueue[WorkerTask] = SuspensionQueue()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="Worker", daemon=True)
        self._thread.start()

    def __enter__(self) -> "Worker":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.terminate_and_wait()

    @property
    def is_terminated(self) -> bool:
        """True once termination has been requested."""
        return self._stop.is_set()

    def add(
        self,
        task: int,
        text: str = "",
        data: Any = None,
        size: int = 0,
        tag: int = 0,
    ) -> None:
        """Queue a task for the worker thread."""
        self._queue.push(WorkerTask(task, text, data, size, tag))

    def sleep(self, millis: int) -> None:
        """Wait ``millis`` milliseconds, returning early if the worker is terminated."""
        self._stop.wait(max(millis, 0) / 1000)

    def terminate(self) -> None:
        """Ask the thread to stop once the task in progress is done."""
        self._stop.set()
        self._queue.terminate()

    def terminate_and_wait(self) -> None:
        """Stop the thread and wait until it has ended."""
        self.terminate()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def is_empty(self) -> bool:
        """Return True if no tasks are waiting."""
        return self._queue.is_empty()

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                item = self._queue.pop()
                if item is None:
                    break
                handler = self.on_task
                if handler is not None:
                    handler(item.task, item.text, item.data, item.size, item.tag)
        finally:
            callback = self.on_terminated
            if callback is not None:
                callback(self)