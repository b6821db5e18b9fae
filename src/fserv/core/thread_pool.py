"""
=============================================================================
THREAD POOL
=============================================================================

Runs one task per accepted connection on a bounded set of worker threads.

=============================================================================
WHY A POOL?
=============================================================================

Handled inline, one slow download blocks every other client:

    accept → serve 2 GB file (minutes) → accept → ...

With a pool the accept loop only hands connections over:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Accept loop ──► [ queue: conn, conn, conn ] ──► Worker-0          │
    │                                                ──► Worker-1          │
    │                                                ──► Worker-2          │
    │                                                ──► ...               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Workers share nothing but the queue. Every task owns its connection,
buffers and open files; the configuration and the handler they call
are read-only.

=============================================================================
BACK-PRESSURE
=============================================================================

The queue is bounded. When it is full, submit() blocks the accept loop
until a worker frees a slot; pending clients then wait in the kernel's
listen backlog. Nothing is rejected with a 503.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Running a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "run func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments.
        kwargs: Keyword arguments.
        submitted_at: Submission time, for queue-wait logging.
    """

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that pulls tasks from the shared queue.

    Loop:
        task = queue.get()      (wakes up every idle_timeout to check shutdown)
        None?  → exit           (poison pill)
        else   → run it, log any exception, keep going
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 1.0
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break  # Poison pill
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Run one task.

        Exceptions are logged and counted, never re-raised: a failing
        request must not kill the thread serving the next one.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Bounded, auto-scaling pool of worker threads.

    Features:
    - min_workers threads started up front
    - one more thread per submit while all are busy, up to max_workers
    - bounded task queue (submit blocks when full)
    - graceful shutdown that lets queued tasks finish

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        ...
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        max_queue_size: int = 128,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            min_workers: Threads created by start() and kept running.
            max_workers: Hard upper bound on threads.
            max_queue_size: Tasks that can wait for a free worker.
            idle_timeout: How often idle workers check for shutdown.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = max_queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=max_queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Create the minimum number of workers."""
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue a task.

        Args:
            func: The function to execute.
            args: Positional arguments.
            kwargs: Keyword arguments.
            block: Wait for a free queue slot when the queue is full.
            queue_timeout: Longest wait for a slot (None = forever).

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        self._maybe_scale_up()
        task = Task(func=func, args=args, kwargs=kwargs or {})
        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False
        return True

    def _maybe_scale_up(self):
        """Add a worker if every current one is busy and we are under max."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if all(w.state == WorkerState.BUSY for w in self._workers):
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks run before stopping the workers.
            timeout: Longest time to wait for the queue to empty.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while self._task_queue.unfinished_tasks:
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # The shutdown event stops the worker anyway

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def queue_size(self) -> int:
        """Tasks currently waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counters for logging."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
            },
            "tasks": {
                "queued": self.queue_size,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
