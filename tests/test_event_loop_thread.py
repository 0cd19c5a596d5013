import threading

import pytest

from tinynet.event_loop_thread import EventLoopThread


def test_start_loop_returns_loop_owned_by_other_thread():
    thread = EventLoopThread()
    try:
        loop = thread.start_loop()
        assert loop.is_in_loop_thread() is False
        done = threading.Event()
        seen = []

        def record():
            seen.append(loop.is_in_loop_thread())
            done.set()

        loop.run_in_loop(record)
        assert done.wait(5)
        assert seen == [True]
    finally:
        thread.close()


def test_init_callback_receives_loop():
    received = []
    with EventLoopThread(received.append, "io") as thread:
        loop = thread.start_loop()
        assert received == [loop]


def test_thread_carries_given_name():
    names = []
    callback = lambda loop: names.append(threading.current_thread().name)
    with EventLoopThread(callback, "worker-a") as thread:
        thread.start_loop()
        assert names == ["worker-a"]
        assert thread.name == "worker-a"


def test_close_stops_loop():
    thread = EventLoopThread()
    loop = thread.start_loop()
    assert thread.started is True
    thread.close()
    assert loop.looping is False


def test_init_callback_error_is_raised_by_start_loop():
    def boom(loop):
        raise ValueError("boom")

    thread = EventLoopThread(boom)
    with pytest.raises(ValueError):
        thread.start_loop()
    thread.close()