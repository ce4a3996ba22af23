"""
Worker pool for fire-and-forget units of work.

Producers enqueue a coroutine function and move on; a fixed number of worker
tasks run the queued work concurrently. A failing unit of work is logged and
never affects the workers or other units of work.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..logs import get_logger

UnitOfWork = Callable[[], Awaitable[None]]


@dataclass
class QueueConfig:
  """Configuration for TaskQueue."""

  # Maximum number of queued units of work, 0 means unbounded
  max_queue_depth: int = 0

  # Number of worker tasks
  num_workers: int = 10


@dataclass
class QueueStats:
  queue_depth: int
  completed_tasks: int
  failed_tasks: int
  is_running: bool


class TaskQueue:
  """
  Usage:
      queue = TaskQueue()
      await queue.start()

      await queue.queue_task(lambda: handle(prompt))

      await queue.stop()
  """

  def __init__(self, config: Optional[QueueConfig] = None):
    self.config = config or QueueConfig()
    self.logger = get_logger("queue")
    self._queue: asyncio.Queue[UnitOfWork] = asyncio.Queue(maxsize=self.config.max_queue_depth)
    self._workers: list[asyncio.Task] = []
    self._running = False
    self._completed_tasks = 0
    self._failed_tasks = 0

  @property
  def is_running(self) -> bool:
    return self._running

  async def start(self) -> None:
    """Start the worker tasks."""
    if self._running:
      return

    self._running = True
    for i in range(self.config.num_workers):
      self._workers.append(asyncio.create_task(self._worker(i), name=f"task-queue-worker-{i}"))

    self.logger.info(f"Started task queue with {self.config.num_workers} workers")

  async def stop(self, timeout: float = 30.0) -> None:
    """
    Stop accepting work, wait for queued work to finish and stop the workers.

    :param timeout: Maximum time to wait for queued work, after which it is cancelled
    """
    if not self._running:
      return

    self._running = False
    try:
      await asyncio.wait_for(self._queue.join(), timeout=timeout)
    except asyncio.TimeoutError:
      self.logger.warning(f"Timeout waiting for {self._queue.qsize()} queued tasks, cancelling them")

    for worker in self._workers:
      worker.cancel()
    await asyncio.gather(*self._workers, return_exceptions=True)
    self._workers.clear()
    self.logger.info("Stopped task queue")

  async def queue_task(self, task: UnitOfWork) -> None:
    """
    Enqueue a unit of work. Returns as soon as it is queued, which only waits
    when a bounded queue is full.

    :raises RuntimeError: If the queue is not running
    """
    if not self._running:
      raise RuntimeError("Task queue is not running")
    await self._queue.put(task)

  async def join(self) -> None:
    """Wait until every queued unit of work has finished."""
    await self._queue.join()

  def stats(self) -> QueueStats:
    return QueueStats(
      queue_depth=self._queue.qsize(),
      completed_tasks=self._completed_tasks,
      failed_tasks=self._failed_tasks,
      is_running=self._running,
    )

  async def _worker(self, worker_id: int) -> None:
    self.logger.debug(f"Worker {worker_id} started")

    while True:
      task = await self._queue.get()
      try:
        await task()
        self._completed_tasks += 1
      except Exception as e:
        self._failed_tasks += 1
        self.logger.error(f"Worker {worker_id} error executing task: {type(e).__name__}: {e}", exc_info=True)
      finally:
        self._queue.task_done()
