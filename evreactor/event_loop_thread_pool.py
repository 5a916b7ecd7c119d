"""A fixed set of event loop threads handed out round-robin."""

from __future__ import annotations

import threading
from typing import Any, Optional

from .event_loop import EventLoop
from .event_loop_thread import EventLoopThread


class EventLoopThreadPool:
    """A pool of EventLoopThread objects."""

    def __init__(self, thread_num: int, name: str = "EventLoopThreadPool"):
        if thread_num < 0:
            raise ValueError(f"thread_num must not be negative: {thread_num}")
        self._name = name
        self._threads = [EventLoopThread(name) for _ in range(thread_num)]
        self._index = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def start(self) -> None:
        """Run all loops in the pool without blocking."""
        for loop_thread in self._threads:
            loop_thread.run()

    def wait(self) -> None:
        """Block until every loop in the pool has quit."""
        for loop_thread in self._threads:
            loop_thread.wait()

    def close(self) -> None:
        """Quit every loop and join every thread."""
        for loop_thread in self._threads:
            loop_thread.close()

    def __enter__(self) -> "EventLoopThreadPool":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._threads)

    def next_loop(self) -> Optional[EventLoop]:
        """The next loop in round-robin order, or None if the pool is empty."""
        if not self._threads:
            return None
        with self._lock:
            loop = self._threads[self._index].loop
            self._index = (self._index + 1) % len(self._threads)
        return loop

    def get_loop(self, index: int) -> Optional[EventLoop]:
        """The loop at position index, or None if there is none."""
        if 0 <= index < len(self._threads):
            return self._threads[index].loop
        return None

    def loops(self) -> list[Optional[EventLoop]]:
        return [loop_thread.loop for loop_thread in self._threads]

    def __repr__(self) -> str:
        return f"EventLoopThreadPool(name={self._name!r}, size={len(self._threads)})"