# evreactor

A small reactor-pattern toolkit. An `EventLoop` waits on file descriptors,
runs timers, and runs functions handed to it from any thread. Built on it
are `EventLoopThread`, which runs one loop in a thread of its own, and
`EventLoopThreadPool`, which hands out several loop threads in turn.

## Installation

```
pip install evreactor
```

You need Python 3.10 or later. The package has no runtime dependencies.

## Modules

- `evreactor.inet_address.InetAddress` holds an IPv4 or IPv6 endpoint.
  - It formats the endpoint as `ip:port` and returns a tuple for the
    `socket` module with `sockaddr()`.
  - `is_loopback_ip()` and `is_intranet_ip()` classify the address. Intranet
    means private, link-local, site-local or loopback.
- `evreactor.channel.Channel` binds one file descriptor to a loop.
  - It records the events to watch, as `PollEvent` flags.
  - When those events fire, it calls its `read_callback`, `write_callback`,
    `close_callback` and `error_callback`. If `event_callback` is set, it
    calls only that one.
- `evreactor.event_loop.EventLoop` is the reactor. A thread can own at most
  one loop; creating a second loop in the same thread raises `RuntimeError`.
  `EventLoop.current()` returns the loop of the calling thread, or `None`.
- `evreactor.event_loop_thread.EventLoopThread` is a thread that owns one
  loop and runs it.
- `evreactor.event_loop_thread_pool.EventLoopThreadPool` is a fixed set of
  loop threads.

## Endpoints

```python
from evreactor.inet_address import InetAddress

addr = InetAddress.from_ip("127.0.0.1", 8888)
addr.to_ip_port()          # "127.0.0.1:8888"
addr.is_loopback_ip()      # True

any6 = InetAddress(8080, ipv6=True)        # [::]:8080
bad = InetAddress.from_ip("not an ip", 80)
bad.is_unspecified()       # True
```

`InetAddress.from_sockaddr()` builds an endpoint from an address tuple
returned by the `socket` module.

## Running work on a loop

```python
from evreactor.event_loop import EventLoop

with EventLoop() as loop:
    loop.run_in_loop(lambda: print("runs now: we are in the loop's thread"))
    loop.queue_in_loop(lambda: print("runs on the next iteration"))
    loop.run_after(1.5, lambda: print("run after 1.5 seconds"))

    timer_id = loop.run_every(0.3, lambda: print("tick"))
    loop.run_after(3, lambda: loop.invalidate_timer(timer_id))
    loop.run_after(4, loop.quit)

    loop.run_on_quit(lambda: print("loop finished"))
    loop.loop()      # blocks until quit() is called
```

Timer calls:

- `run_at` takes an absolute time, either a `datetime` or a POSIX
  timestamp.
- `run_after` and `run_every` take seconds, as a number or as a
  `datetime.timedelta`.
- Each of these returns a timer id. Pass it to `invalidate_timer` to
  cancel the timer.

Functions registered with `run_on_quit` run when `loop()` returns. They
also run if `loop()` exits with an exception, and that exception is then
raised again.

`close()` asks the loop to quit, waits for it to stop, and releases its
sockets. You can call `move_to_current_thread()` to bind a loop that is not
running to the calling thread.

## Watching a file descriptor

```python
import socket
from evreactor.channel import Channel
from evreactor.event_loop import EventLoop

loop = EventLoop()
a, b = socket.socketpair()
channel = Channel(loop, a.fileno())

def on_read():
    print(a.recv(100))
    channel.disable_all()
    channel.remove()
    loop.quit()

channel.read_callback = on_read
channel.enable_reading()
b.send(b"hi")
loop.loop()
loop.close()
```

Only change a channel from its loop's thread. `remove()` raises
`RuntimeError` while any events are still enabled.

`channel.tie(obj)` keeps only a weak reference to `obj`. Once `obj` is gone,
the channel stops dispatching events.

## A loop in its own thread

```python
from evreactor.event_loop_thread import EventLoopThread

with EventLoopThread("worker") as thread:
    thread.loop.run_on_quit(lambda: print("bye"))
    thread.run()                      # returns once the loop is looping
    thread.loop.queue_in_loop(lambda: print("hello from the worker"))
```

When the `with` block ends, `close()` is called. It runs the loop if it
never ran, asks the loop to quit, and joins the thread. `wait()` only joins
the thread. After the loop exits, `thread.loop` is `None`.

## A pool of loops

```python
from evreactor.event_loop_thread_pool import EventLoopThreadPool

pool = EventLoopThreadPool(3, "io")
pool.start()
for n in range(6):
    pool.next_loop().queue_in_loop(lambda n=n: print("job", n))
for loop in pool.loops():
    loop.queue_in_loop(loop.quit)
pool.wait()
pool.close()
```

`len(pool)` gives the number of loops. `pool.get_loop(i)` returns the loop
at position `i`, or `None` when `i` is out of range. `next_loop()` returns
`None` for an empty pool.

## What it does not do

The package gives you the loop, the channels and the threads only. It has
no TCP server or client, no connection objects, no socket acceptor or
connector, no DNS resolver and no TLS. To do any of these, you open and
read the sockets yourself and watch them with a `Channel`.

## Running the tests

```
pip install -e ".[test]"
pytest
```