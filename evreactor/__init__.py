"""Reactor-style event loops with channels, timers, loop threads and thread pools."""

__version__ = "0.1.0"
__all__ = [
    "channel",
    "event_loop",
    "event_loop_thread",
    "event_loop_thread_pool",
    "inet_address",
]