"""
Unit tests for the worker thread pool.
"""

import threading

import pytest

from embedhttp.core import ThreadPool


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_submit_runs_task(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=4)
        pool.start()
        done = threading.Event()
        try:
            assert pool.submit(done.set) is True
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown()

    def test_full_queue_rejects(self):
        """With every worker busy and the queue full, submit returns False."""
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1)
        pool.start()
        started = threading.Event()
        release = threading.Event()

        def blocker():
            started.set()
            release.wait(timeout=5.0)

        try:
            assert pool.submit(blocker)
            assert started.wait(timeout=5.0)
            assert pool.submit(lambda: None)
            assert pool.submit(lambda: None) is False
        finally:
            release.set()
            pool.shutdown()

    def test_submit_requires_start(self):
        pool = ThreadPool(min_workers=1, max_workers=1)

        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_failing_task_keeps_worker_alive(self):
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=4)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("task bug")

        try:
            pool.submit(boom)
            pool.submit(done.set)
            assert done.wait(timeout=5.0)
        finally:
            pool.shutdown()
