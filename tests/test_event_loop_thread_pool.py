import threading

import pytest

from evreactor.event_loop import EventLoop
from evreactor.event_loop_thread_pool import EventLoopThreadPool

TIMEOUT = 60


def test_len_matches_thread_num():
    with EventLoopThreadPool(3) as pool:
        assert len(pool) == 3
        assert len(pool.loops()) == 3


def test_loops_are_distinct_event_loops():
    with EventLoopThreadPool(3) as pool:
        loops = pool.loops()
        assert all(isinstance(loop, EventLoop) for loop in loops)
        assert len({id(loop) for loop in loops}) == len(loops)


def test_next_loop_is_round_robin():
    with EventLoopThreadPool(3) as pool:
        loops = pool.loops()
        picked = [pool.next_loop() for _ in range(2 * len(pool))]
        assert picked == loops + loops


def test_get_loop_matches_loops():
    with EventLoopThreadPool(2) as pool:
        loops = pool.loops()
        assert [pool.get_loop(i) for i in range(len(pool))] == loops


def test_get_loop_out_of_range_is_none():
    with EventLoopThreadPool(2) as pool:
        assert pool.get_loop(len(pool)) is None
        assert pool.get_loop(-1) is None


def test_empty_pool():
    pool = EventLoopThreadPool(0)
    assert len(pool) == 0
    assert pool.next_loop() is None
    assert pool.loops() == []
    assert pool.get_loop(0) is None
    pool.start()
    pool.wait()


def test_negative_thread_num_raises():
    with pytest.raises(ValueError):
        EventLoopThreadPool(-1)


def test_start_runs_every_loop_in_its_own_thread():
    names = []
    lock = threading.Lock()
    done = threading.Barrier(4)
    with EventLoopThreadPool(3) as pool:
        for loop in pool.loops():

            def record(loop=loop):
                with lock:
                    names.append((threading.current_thread().ident, loop.is_in_loop_thread()))
                done.wait(TIMEOUT)

            loop.queue_in_loop(record)
        pool.start()
        assert all(loop.is_running() for loop in pool.loops())
        done.wait(TIMEOUT)
    assert len({ident for ident, _ in names}) == 3
    assert all(in_loop for _, in_loop in names)


def test_default_name_is_used_for_threads():
    seen = []
    done = threading.Event()
    with EventLoopThreadPool(1) as pool:
        pool.get_loop(0).queue_in_loop(
            lambda: (seen.append(threading.current_thread().name), done.set())
        )
        pool.start()
        assert done.wait(TIMEOUT)
    assert seen == ["EventLoopThreadPool"]


def test_wait_returns_after_all_loops_quit():
    pool = EventLoopThreadPool(2)
    pool.start()
    for loop in pool.loops():
        loop.quit()
    pool.wait()
    assert pool.loops() == [None, None]


def test_close_clears_loops():
    pool = EventLoopThreadPool(2)
    pool.start()
    pool.close()
    assert pool.loops() == [None, None]
    assert pool.next_loop() is None