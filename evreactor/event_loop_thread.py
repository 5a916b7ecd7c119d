"""A thread that owns and runs one event loop."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any, Optional

from .event_loop import EventLoop

log = logging.getLogger(__name__)


class EventLoopThread:
    """Starts a thread holding an EventLoop; the loop runs once run() is called."""

    def __init__(self, name: str = "EventLoopThread"):
        self._name = name
        self._lock = threading.Lock()
        self._loop: Optional[EventLoop] = None
        self._loop_future: "Future[EventLoop]" = Future()
        self._run_requested = threading.Event()
        self._loop_started = threading.Event()
        self._run_lock = threading.Lock()
        self._run_called = False
        self._thread = threading.Thread(target=self._loop_funcs, name=name, daemon=True)
        self._thread.start()
        self._loop_future.result()

    @property
    def name(self) -> str:
        return self._name

    @property
    def loop(self) -> Optional[EventLoop]:
        """The thread's event loop, or None once it has exited."""
        with self._lock:
            return self._loop

    def run(self) -> None:
        """Start the loop and return once it is looping; later calls do nothing."""
        with self._run_lock:
            if self._run_called:
                return
            self._run_called = True
            self._run_requested.set()
            self._loop_started.wait()

    def wait(self) -> None:
        """Block until the loop has exited."""
        self._thread.join()

    def close(self) -> None:
        """Run the loop if it never ran, make it quit and join the thread."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("cannot close an EventLoopThread from its own thread")
        self.run()
        loop = self.loop
        if loop is not None:
            loop.quit()
        self._thread.join()

    def __enter__(self) -> "EventLoopThread":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _loop_funcs(self) -> None:
        try:
            loop = EventLoop()
        except Exception as exc:
            self._loop_future.set_exception(exc)
            return
        loop.queue_in_loop(self._loop_started.set)
        with self._lock:
            self._loop = loop
        self._loop_future.set_result(loop)
        self._run_requested.wait()
        try:
            loop.loop()
        except Exception:
            log.exception("event loop in thread %r exited with an exception", self._name)
        finally:
            with self._lock:
                self._loop = None
            self._loop_started.set()
            loop.close()

    def __repr__(self) -> str:
        return f"EventLoopThread(name={self._name!r}, alive={self._thread.is_alive()})"