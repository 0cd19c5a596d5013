# tinynet

tinynet is a small TCP networking library in the reactor style. It uses only
the standard library. Each thread runs at most one event loop. A main loop
accepts connections and hands each new connection to the next loop in a pool
of worker loops, in turn.

It needs Python 3.10 or later and a POSIX system, because it relies on
`select.poll` and `os.readv`.

## Modules

- `tinynet.timestamp`
  - `Timestamp` is a frozen, ordered value holding microseconds since the epoch.
  - `Timestamp.now()` and `Timestamp.invalid()` build values. `invalid()` gives zero.
  - `add_time(timestamp, seconds)` returns a timestamp moved by the given seconds.
- `tinynet.buffer`
  - `Buffer` is a growable byte buffer with an 8-byte prependable area.
  - For reading it has `peek`, `retrieve`, `retrieve_until`, `retrieve_all`, `retrieve_as_bytes` and `retrieve_all_as_bytes`.
  - `append` adds bytes, or text encoded as UTF-8.
  - `find_crlf` returns the offset of the first `\r\n`, or `None`.
  - `read_fd(fd)` and `write_fd(fd)` do the I/O. Read errors are raised as `OSError`.
- `tinynet.inet_address`
  - `InetAddress` is an IPv4 address and port.
  - Built from a port, its address is always `0.0.0.0`. The `ip` argument is accepted but not used.
  - `InetAddress.from_sockaddr((host, port))` keeps the address it is given.
- `tinynet.channel`
  - `Channel` holds a file descriptor, the events it is watched for, and the read, write, close and error callbacks.
  - Every change to the events is passed to the owning loop.
  - `tie(obj)` makes the channel handle events only while `obj` is alive.
- `tinynet.poller`
  - `Poller` is the abstract base class.
  - `PollPoller` is built on `select.poll`.
  - `new_default_poller(loop)` returns a `PollPoller`.
- `tinynet.timer` and `tinynet.timer_queue`
  - `Timer` is a one-shot or repeating timer.
  - `TimerQueue` keeps timers ordered by expiration.
  - `TimerQueue.earliest_expiration()` returns the next expiration.
  - `TimerQueue.handle_expired(now)` runs the timers that are due.
- `tinynet.event_loop`
  - `EventLoop` provides `loop`, `quit`, `run_in_loop`, `queue_in_loop`, `wakeup`, `run_at`, `run_after`, `run_every` and `close`.
  - Creating a second loop in a thread that already has an open one raises `RuntimeError`.
  - One poll blocks for at most 10 seconds, and for less when a timer is due sooner.
- `tinynet.event_loop_thread`
  - `EventLoopThread` runs a loop in a background thread.
  - `start_loop()` returns that loop.
- `tinynet.event_loop_thread_pool`
  - `EventLoopThreadPool` starts `num_threads` loop threads.
  - `get_next_loop()` hands the loops out in turn. With no threads it returns the base loop.
- `tinynet.tcp_socket`
  - `Socket` owns a socket and offers bind, listen, accept, write shutdown and socket options.
- `tinynet.acceptor`
  - `Acceptor` owns the listening socket.
  - It passes each accepted socket and the peer's address to `new_connection_callback`.
- `tinynet.tcp_connection`
  - `TcpConnection` has input and output buffers.
  - It provides `send`, `shutdown` and `set_high_water_mark_callback`.
  - Its states are listed in `ConnectionState`.
- `tinynet.tcp_server`
  - `TcpServer` accepts connections and spreads them over a loop pool.
  - Connections are named `<name>-<ip:port>#<n>`.
  - `Option.REUSE_PORT` and `Option.NO_REUSE_PORT` choose whether `SO_REUSEADDR` is set.
- Utilities
  - `tinynet.fixed_buffer.FixedBuffer` is a fixed-capacity byte area.
  - `tinynet.stopwatch.Stopwatch` is a pausable stopwatch that reports in `TimeUnit` units.
  - `tinynet.http_request.HttpRequest` has `Method` and `Version` enums.

## Installing

```
pip install .
```

To install the test tools as well:

```
pip install .[test]
```

## An echo server

```python
from tinynet.event_loop import EventLoop
from tinynet.inet_address import InetAddress
from tinynet.tcp_server import TcpServer

loop = EventLoop()
server = TcpServer(loop, InetAddress(8080), "echo")

def on_message(conn, buf, receive_time):
    conn.send(buf.retrieve_all_as_bytes())

server.message_callback = on_message
server.set_thread_num(2)
server.start()
loop.loop()
```

You can also set `server.connection_callback`, `server.write_complete_callback`
and `server.thread_init_callback`.

Call `loop.quit()` from a callback or from another thread to stop the loop.
Then call `server.close()` and `loop.close()`. `server.close()` destroys the
connections, stops the worker threads and closes the listening socket.

## Timers

```python
loop.run_after(1.5, lambda: print("once"))
loop.run_every(2.0, lambda: print("tick"))
```

Timers run in the loop's own thread after each poll.

## What it does not do

- There is no HTTP server and no HTTP parser. `HttpRequest` only holds a request's method, version, path, query, receive time and headers.
- There is no log-file writer. Messages go through the standard `logging` module.
- Only IPv4 is supported.
- There is no command-line program.

## Running the tests

```
pytest
```