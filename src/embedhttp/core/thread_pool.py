"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that run connection handlers.

    accept loop ──submit──► [ bounded queue ] ──get──► Worker-0
                                              ──get──► Worker-1
                                              ──get──► ...

The pool starts min_workers threads and adds one more (up to max_workers)
whenever a task is queued while every worker is busy. The queue is bounded
so that a flood of connections is rejected (submit() returns False and the
server answers 503) instead of piling up in memory.

Shutdown puts one None per worker on the queue; a worker exits when it
takes a None.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


@dataclass
class Task:
    """A deferred call."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it receives None."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"embedhttp-worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.busy = False

    def run(self) -> None:
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task) -> None:
        self.busy = True
        try:
            task.func(*task.args, **task.kwargs)
        except Exception as e:
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.busy = False


class ThreadPool:
    """
    Fixed-minimum, bounded-maximum pool of worker threads.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up under load.
        queue_size: Pending tasks accepted before submit() fails.
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.min_workers} workers")
            for _ in range(self.min_workers):
                self._add_worker()
            self._started = True
            self._shutting_down = False

    def _add_worker(self) -> None:
        # caller holds self._lock
        worker = Worker(self._task_queue, len(self._workers))
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> bool:
        """
        Queue a call without blocking.

        Returns:
            False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func, args, kwargs or {}))
        except queue.Full:
            return False
        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self) -> None:
        with self._lock:
            all_busy = all(worker.busy for worker in self._workers)
            if all_busy and len(self._workers) < self.max_workers and not self._task_queue.empty():
                logger.debug(f"Scaling up to {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop all workers.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound on waiting for the queue to drain.
        """
        with self._lock:
            if not self._started:
                return
            self._shutting_down = True
            workers = list(self._workers)

        logger.info("Shutting down thread pool...")
        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._task_queue.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Thread pool shutdown timed out with tasks still queued")
                    break
                time.sleep(0.05)

        for _ in workers:
            self._task_queue.put(None)
        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
            self._started = False
        logger.info("Thread pool shutdown complete")
