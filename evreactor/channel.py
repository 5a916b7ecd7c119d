"""A file descriptor with its watched events and event callbacks."""

from __future__ import annotations

import enum
import select
import sys
import weakref
from typing import Any, Callable, Optional

_LINUX = sys.platform.startswith("linux")
_WINDOWS = sys.platform == "win32"


class PollEvent(enum.IntFlag):
    """Poll event bits."""

    NONE = 0
    IN = getattr(select, "POLLIN", 0x001)
    PRI = getattr(select, "POLLPRI", 0x002)
    OUT = getattr(select, "POLLOUT", 0x004)
    ERR = getattr(select, "POLLERR", 0x008)
    HUP = getattr(select, "POLLHUP", 0x010)
    NVAL = getattr(select, "POLLNVAL", 0x020)
    RDHUP = getattr(select, "POLLRDHUP", 0x2000)


_READ_TRIGGER = PollEvent.IN | PollEvent.PRI | (PollEvent.RDHUP if _LINUX else PollEvent.NONE)

Callback = Optional[Callable[[], Any]]


class Channel:
    """Dispatches poll results for one descriptor to its callbacks.

    The owning loop must provide ``update_channel(channel)`` and
    ``remove_channel(channel)``.
    """

    NONE_EVENT = PollEvent.NONE
    READ_EVENT = PollEvent.IN | PollEvent.PRI
    WRITE_EVENT = PollEvent.OUT

    def __init__(self, loop: Any, fd: int):
        self._loop = loop
        self._fd = fd
        self._events = PollEvent.NONE
        self._revents = PollEvent.NONE
        self._tie: Optional[weakref.ref] = None
        self.index = -1
        self.read_callback: Callback = None
        self.write_callback: Callback = None
        self.close_callback: Callback = None
        self.error_callback: Callback = None
        self.event_callback: Callback = None

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def events(self) -> PollEvent:
        """Events the channel is interested in."""
        return self._events

    @property
    def revents(self) -> PollEvent:
        """Events that last occurred on the descriptor."""
        return self._revents

    @property
    def owner_loop(self) -> Any:
        return self._loop

    def is_none_event(self) -> bool:
        return self._events == self.NONE_EVENT

    def is_reading(self) -> bool:
        return bool(self._events & self.READ_EVENT)

    def is_writing(self) -> bool:
        return bool(self._events & self.WRITE_EVENT)

    def enable_reading(self) -> None:
        self._events |= self.READ_EVENT
        self._update()

    def disable_reading(self) -> None:
        self._events &= ~self.READ_EVENT
        self._update()

    def enable_writing(self) -> None:
        self._events |= self.WRITE_EVENT
        self._update()

    def disable_writing(self) -> None:
        self._events &= ~self.WRITE_EVENT
        self._update()

    def disable_all(self) -> None:
        self._events = self.NONE_EVENT
        self._update()

    def update_events(self, events: int) -> None:
        self._events = PollEvent(events)
        self._update()

    def remove(self) -> None:
        """Remove the channel from its loop; all events must be disabled first."""
        if self._events != self.NONE_EVENT:
            raise RuntimeError("cannot remove a channel with events enabled")
        self._loop.remove_channel(self)

    def tie(self, obj: Any) -> None:
        """Only dispatch events while ``obj`` is still alive (held weakly)."""
        self._tie = weakref.ref(obj)

    def set_revents(self, revents: int) -> PollEvent:
        self._revents = PollEvent(revents)
        return self._revents

    def handle_event(self) -> None:
        if self._events == self.NONE_EVENT:
            return
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_safely()
            del guard
        else:
            self._handle_event_safely()

    def _update(self) -> None:
        self._loop.update_channel(self)

    def _handle_event_safely(self) -> None:
        revents = self._revents
        if self.event_callback is not None:
            self.event_callback()
            return
        if revents & PollEvent.HUP and not revents & PollEvent.IN:
            if self.close_callback is not None:
                self.close_callback()
        if revents & (PollEvent.NVAL | PollEvent.ERR):
            if self.error_callback is not None:
                self.error_callback()
        if revents & _READ_TRIGGER:
            if self.read_callback is not None:
                self.read_callback()
        writable = bool(revents & PollEvent.OUT)
        if _WINDOWS and revents & PollEvent.HUP:
            writable = False
        if writable and self.write_callback is not None:
            self.write_callback()

    def __repr__(self) -> str:
        return f"Channel(fd={self._fd}, events={self._events!r})"