"""Reactor event loop: I/O readiness, timers and cross-thread calls."""

from __future__ import annotations

import collections
import datetime
import heapq
import itertools
import logging
import math
import select
import selectors
import socket
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .channel import Channel, PollEvent

log = logging.getLogger(__name__)

INVALID_TIMER_ID = 0
_POLL_TIMEOUT = 10.0

Func = Callable[[], Any]
Seconds = Union[float, int, datetime.timedelta]

_loops_lock = threading.Lock()
_loops_by_thread: "weakref.WeakKeyDictionary[threading.Thread, EventLoop]" = (
    weakref.WeakKeyDictionary()
)


def _to_seconds(value: Seconds) -> float:
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    return float(value)


@dataclass
class _Timer:
    func: Func
    interval: float
    when: float


class _PollPoller:
    """Poller backed by ``select.poll``."""

    def __init__(self) -> None:
        self._poll = select.poll()
        self._channels: dict[int, Channel] = {}

    def update(self, channel: Channel) -> None:
        fd = channel.fd
        if channel.is_none_event():
            self.remove(channel)
            return
        if fd in self._channels:
            self._poll.modify(fd, int(channel.events))
        else:
            self._poll.register(fd, int(channel.events))
        self._channels[fd] = channel

    def remove(self, channel: Channel) -> None:
        if self._channels.pop(channel.fd, None) is not None:
            self._poll.unregister(channel.fd)

    def poll(self, timeout: float) -> list[Channel]:
        ready = self._poll.poll(math.ceil(timeout * 1000))
        active = []
        for fd, revents in ready:
            channel = self._channels.get(fd)
            if channel is not None:
                channel.set_revents(revents)
                active.append(channel)
        return active

    def close(self) -> None:
        self._channels.clear()


class _SelectorPoller:
    """Poller backed by the ``selectors`` module, for platforms without poll."""

    def __init__(self) -> None:
        self._selector = selectors.DefaultSelector()

    def update(self, channel: Channel) -> None:
        mask = 0
        if channel.is_reading():
            mask |= selectors.EVENT_READ
        if channel.is_writing():
            mask |= selectors.EVENT_WRITE
        if not mask:
            self.remove(channel)
            return
        try:
            self._selector.get_key(channel.fd)
        except KeyError:
            self._selector.register(channel.fd, mask, channel)
        else:
            self._selector.modify(channel.fd, mask, channel)

    def remove(self, channel: Channel) -> None:
        try:
            self._selector.unregister(channel.fd)
        except KeyError:
            pass

    def poll(self, timeout: float) -> list[Channel]:
        active = []
        for key, mask in self._selector.select(timeout):
            revents = PollEvent.NONE
            if mask & selectors.EVENT_READ:
                revents |= PollEvent.IN
            if mask & selectors.EVENT_WRITE:
                revents |= PollEvent.OUT
            key.data.set_revents(revents)
            active.append(key.data)
        return active

    def close(self) -> None:
        self._selector.close()


def _new_poller():
    return _PollPoller() if hasattr(select, "poll") else _SelectorPoller()


class EventLoop:
    """An event loop bound to one thread; at most one loop per thread."""

    def __init__(self) -> None:
        thread = threading.current_thread()
        with _loops_lock:
            if thread in _loops_by_thread:
                raise RuntimeError("There is already an EventLoop in this thread")
        self._thread = thread
        self._looping = False
        self._quit = False
        self._calling_funcs = False
        self._event_handling = False
        self._closed = False
        self._funcs: collections.deque[Func] = collections.deque()
        self._funcs_on_quit: collections.deque[Func] = collections.deque()
        self._timers: dict[int, _Timer] = {}
        self._timer_heap: list[tuple[float, int]] = []
        self._timer_lock = threading.Lock()
        self._timer_ids = itertools.count(1)
        self._poller = _new_poller()
        self._wakeup_reader, self._wakeup_writer = socket.socketpair()
        self._wakeup_reader.setblocking(False)
        self._wakeup_writer.setblocking(False)
        self._wakeup_channel = Channel(self, self._wakeup_reader.fileno())
        self._wakeup_channel.read_callback = self._wakeup_read
        self._wakeup_channel.enable_reading()
        with _loops_lock:
            if thread in _loops_by_thread:
                self._release_resources()
                raise RuntimeError("There is already an EventLoop in this thread")
            _loops_by_thread[thread] = self

    @classmethod
    def current(cls) -> Optional["EventLoop"]:
        """The event loop of the calling thread, or None."""
        with _loops_lock:
            return _loops_by_thread.get(threading.current_thread())

    def loop(self) -> None:
        """Run until quit() is called; blocks the calling thread."""
        if self._closed:
            raise RuntimeError("EventLoop is closed")
        if self._looping:
            raise RuntimeError("EventLoop is already looping")
        self.assert_in_loop_thread()
        self._looping = True
        self._quit = False
        try:
            try:
                while not self._quit:
                    active = self._poller.poll(self._next_timeout())
                    self._process_timers()
                    self._event_handling = True
                    for channel in active:
                        channel.handle_event()
                    self._event_handling = False
                    self._run_queued_funcs()
            except Exception:
                log.warning(
                    "Exception thrown from event loop, rethrowing after "
                    "running functions on quit"
                )
                raise
            finally:
                self._event_handling = False
                self._looping = False
        finally:
            self._run_quit_funcs()

    def quit(self) -> None:
        self._quit = True
        if not self.is_in_loop_thread():
            self._wakeup()

    def close(self) -> None:
        """Stop the loop, wait for it to exit and release its resources."""
        if self._closed:
            return
        if self._looping and self.is_in_loop_thread():
            raise RuntimeError("cannot close an EventLoop from inside its own loop")
        self.quit()
        while self._looping:
            time.sleep(0.001)
        self._closed = True
        with _loops_lock:
            if _loops_by_thread.get(self._thread) is self:
                del _loops_by_thread[self._thread]
        self._release_resources()

    def _release_resources(self) -> None:
        self._poller.close()
        self._wakeup_reader.close()
        self._wakeup_writer.close()

    def __enter__(self) -> "EventLoop":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def is_in_loop_thread(self) -> bool:
        return self._thread is threading.current_thread()

    def assert_in_loop_thread(self) -> None:
        if not self.is_in_loop_thread():
            raise RuntimeError(
                "It is forbidden to run loop on threads other than event-loop thread"
            )

    def is_running(self) -> bool:
        return self._looping and not self._quit

    def is_calling_functions(self) -> bool:
        return self._calling_funcs

    def run_in_loop(self, func: Func) -> None:
        """Run func now if in the loop thread, otherwise queue it."""
        if self.is_in_loop_thread():
            func()
        else:
            self.queue_in_loop(func)

    def queue_in_loop(self, func: Func) -> None:
        """Run func in the loop thread after the current iteration's events."""
        self._funcs.append(func)
        if not self.is_in_loop_thread() or not self._looping:
            self._wakeup()

    def run_at(self, when: Union[datetime.datetime, float], func: Func) -> int:
        """Run func at a wall-clock time (datetime or POSIX timestamp)."""
        if isinstance(when, datetime.datetime):
            timestamp = when.timestamp()
        else:
            timestamp = float(when)
        delay = timestamp - time.time()
        return self._add_timer(func, time.monotonic() + delay, 0.0)

    def run_after(self, delay: Seconds, func: Func) -> int:
        """Run func once after delay seconds."""
        return self._add_timer(func, time.monotonic() + _to_seconds(delay), 0.0)

    def run_every(self, interval: Seconds, func: Func) -> int:
        """Run func repeatedly, every interval seconds."""
        seconds = _to_seconds(interval)
        if seconds <= 0:
            raise ValueError(f"interval must be positive: {seconds}")
        return self._add_timer(func, time.monotonic() + seconds, seconds)

    def invalidate_timer(self, timer_id: int) -> None:
        with self._timer_lock:
            self._timers.pop(timer_id, None)

    def run_on_quit(self, func: Func) -> None:
        """Run func when the loop exits, even if it exits with an exception."""
        self._funcs_on_quit.append(func)

    def move_to_current_thread(self) -> None:
        """Bind the loop to the calling thread; the loop must not be running."""
        if self.is_running():
            raise RuntimeError("EventLoop cannot be moved when running")
        if self.is_in_loop_thread():
            log.warning("This EventLoop is already in the current thread")
            return
        thread = threading.current_thread()
        with _loops_lock:
            if thread in _loops_by_thread:
                raise RuntimeError(
                    "There is already an EventLoop in this thread, "
                    "you cannot move another in"
                )
            if _loops_by_thread.get(self._thread) is self:
                del _loops_by_thread[self._thread]
            _loops_by_thread[thread] = self
        self._thread = thread

    def update_channel(self, channel: Channel) -> None:
        if channel.owner_loop is not self:
            raise ValueError("channel belongs to another loop")
        self.assert_in_loop_thread()
        self._poller.update(channel)

    def remove_channel(self, channel: Channel) -> None:
        if channel.owner_loop is not self:
            raise ValueError("channel belongs to another loop")
        self.assert_in_loop_thread()
        self._poller.remove(channel)

    def _add_timer(self, func: Func, when: float, interval: float) -> int:
        with self._timer_lock:
            timer_id = next(self._timer_ids)
            self._timers[timer_id] = _Timer(func, interval, when)
            heapq.heappush(self._timer_heap, (when, timer_id))
        if not self.is_in_loop_thread():
            self._wakeup()
        return timer_id

    def _next_timeout(self) -> float:
        if self._funcs:
            return 0.0
        with self._timer_lock:
            if not self._timer_heap:
                return _POLL_TIMEOUT
            due = self._timer_heap[0][0]
        return min(max(due - time.monotonic(), 0.0), _POLL_TIMEOUT)

    def _process_timers(self) -> None:
        now = time.monotonic()
        expired: list[tuple[int, _Timer]] = []
        with self._timer_lock:
            while self._timer_heap and self._timer_heap[0][0] <= now:
                when, timer_id = heapq.heappop(self._timer_heap)
                timer = self._timers.get(timer_id)
                if timer is None or timer.when != when:
                    continue
                if not timer.interval:
                    del self._timers[timer_id]
                expired.append((timer_id, timer))
        for _, timer in expired:
            timer.func()
        now = time.monotonic()
        with self._timer_lock:
            for timer_id, timer in expired:
                if timer.interval and self._timers.get(timer_id) is timer:
                    timer.when = now + timer.interval
                    heapq.heappush(self._timer_heap, (timer.when, timer_id))

    def _run_queued_funcs(self) -> None:
        self._calling_funcs = True
        try:
            while self._funcs:
                try:
                    func = self._funcs.popleft()
                except IndexError:
                    break
                func()
        finally:
            self._calling_funcs = False

    def _run_quit_funcs(self) -> None:
        while self._funcs_on_quit:
            try:
                func = self._funcs_on_quit.popleft()
            except IndexError:
                break
            func()

    def _wakeup(self) -> None:
        try:
            self._wakeup_writer.send(b"\x01")
        except OSError:
            pass

    def _wakeup_read(self) -> None:
        while True:
            try:
                if not self._wakeup_reader.recv(4096):
                    return
            except BlockingIOError:
                return
            except OSError:
                log.exception("wakeup read error")
                return

    def __repr__(self) -> str:
        return f"EventLoop(thread={self._thread.name!r}, running={self.is_running()})"