"""
=============================================================================
THREAD POOL
=============================================================================

Runs connection handling on a fixed set of worker threads fed by a
bounded queue, instead of spawning one thread per connection.

    ┌──────────────┐    submit()    ┌─────────────────────────┐
    │ Accept loop  │ ─────────────► │ Task queue (bounded)    │
    └──────────────┘                │ [conn] [conn] [conn] .. │
                                    └───────────┬─────────────┘
                                                │ get()
                      ┌─────────────────────────┼─────────────────────────┐
                      ▼                         ▼                         ▼
                ┌───────────┐             ┌───────────┐             ┌───────────┐
                │ Worker-0  │             │ Worker-1  │     ...     │ Worker-N  │
                └───────────┘             └───────────┘             └───────────┘

=============================================================================
SIZING
=============================================================================

    min_workers   started with the pool, always running
    max_workers   ceiling; a worker is added when every worker is busy
                  and tasks are waiting
    queue_size    tasks waiting for a worker; submit() returns False
                  beyond it and the caller answers the client itself

=============================================================================
SHUTDOWN
=============================================================================

Each worker exits when it takes a "poison pill" (None) off the queue.
shutdown() optionally waits for queued tasks, then sends one pill per
worker and joins them.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread: take a task, run it, repeat until a poison pill.

    A failing task is logged and counted; it never kills the worker.
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.state = WorkerState.IDLE

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s"
            )
        except Exception as e:
            # One bad task must not take the worker down with it
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Thread pool for concurrent connection handling.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,)):
            ...  # queue full: refuse the connection

        print(pool.stats)   # {"workers": {...}, "tasks": {...}}
        pool.shutdown(wait=True)
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        """
        Args:
            min_workers: Worker threads created at start().
            max_workers: Upper bound when scaling up under load.
            queue_size: Maximum number of queued tasks.
        """
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError("Need 1 <= min_workers <= max_workers")

        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self):
        """Start min_workers threads. Calling it again does nothing."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker_locked()

        self._started = True
        self._shutdown = False

    def _add_worker_locked(self) -> Worker:
        """Start one more worker. Caller must hold self._lock."""
        worker = Worker(task_queue=self._task_queue, worker_id=self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue a task without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            logger.warning("Thread pool queue full, rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker if all are busy, work is waiting and we are under max."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            busy = sum(1 for w in self._workers if w.state is WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker_locked()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first. Otherwise they are dropped.
            timeout: Give up waiting for the queue to drain after this long.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)
        else:
            self._drain()

        with self._lock:
            workers = list(self._workers)

        # One poison pill per worker; blocking put is fine, workers are
        # consuming the queue
        for _ in workers:
            self._task_queue.put(None)

        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        self._started = False

        logger.info("Thread pool shutdown complete")

    def _drain(self):
        while True:
            try:
                self._task_queue.get_nowait()
            except queue.Empty:
                return
            self._task_queue.task_done()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def stats(self) -> dict:
        """Worker and task counts, e.g. for the startup banner or debugging."""
        with self._lock:
            workers = list(self._workers)

        return {
            "workers": {
                "total": len(workers),
                "busy": sum(1 for w in workers if w.state is WorkerState.BUSY),
                "idle": sum(1 for w in workers if w.state is WorkerState.IDLE),
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in workers),
                "failed": sum(w.tasks_failed for w in workers),
            },
        }
