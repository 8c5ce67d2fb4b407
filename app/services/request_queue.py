"""
Serialized request queue for rate-limited upstream APIs.

Every job submitted here runs one at a time, in submission order, with a fixed
pause after each job's outcome is delivered before the next one starts. Jikan
enforces roughly one request per second, so all catalog calls go through a
single process-wide queue.

Usage::

    queue = get_request_queue()
    data = await queue.submit(lambda: client.get("/manga", params={"q": "Berserk"}))

``submit`` is synchronous: the job is enqueued at call time and the returned
future is the completion handle. Ordering is therefore the order of ``submit``
calls, not the order in which callers await.
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any

from loguru import logger

from app.core.config import settings

Work = Callable[[], Awaitable[Any]]


@dataclass
class Job:
    work: Work
    future: asyncio.Future
    name: str = "job"


@dataclass
class QueueStats:
    submitted: int = 0
    completed: int = 0
    failed: int = 0
    timed_out: int = 0
    pending: int = 0
    active: bool = False
    delay_seconds: float = 0.0
    job_timeout_seconds: float | None = None


class RequestQueue:
    """
    FIFO queue that runs async jobs one at a time with a fixed delay between them.

    The pending deque and ``_active`` flag are only touched from synchronous code
    that never awaits between checking and updating them, so no lock is needed on
    a single event loop.

    Args:
        delay: Seconds to wait after a job's outcome is delivered before the next
            job starts.
        job_timeout: Optional cap, in seconds, on a single job. A job that runs
            longer is rejected with ``asyncio.TimeoutError`` and the loop moves on.
    """

    def __init__(self, delay: float, job_timeout: float | None = None):
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self.job_timeout = job_timeout or None
        self._pending: deque[Job] = deque()
        self._active = False
        self._drain_task: asyncio.Task | None = None
        self._stats = QueueStats(delay_seconds=delay, job_timeout_seconds=self.job_timeout)

    @property
    def is_active(self) -> bool:
        return self._active

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, work: Work, name: str | None = None) -> asyncio.Future:
        """Enqueue ``work`` and return a future resolved with its outcome."""
        loop = asyncio.get_running_loop()
        job = Job(work=work, future=loop.create_future(), name=name or getattr(work, "__name__", "job"))
        self._pending.append(job)
        self._stats.submitted += 1

        if not self._active:
            self._active = True
            self._drain_task = loop.create_task(self._drain())
        return job.future

    async def _drain(self):
        try:
            while self._pending:
                job = self._pending.popleft()
                await self._run(job)
                await asyncio.sleep(self.delay)
        finally:
            self._active = False
            self._drain_task = None

    async def _run(self, job: Job):
        logger.debug(f"Queue running {job.name} ({len(self._pending)} pending)")
        try:
            if self.job_timeout:
                result = await asyncio.wait_for(job.work(), timeout=self.job_timeout)
            else:
                result = await job.work()
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                job.future.cancel()
                raise
            # The job cancelled itself: reject its handle like any other failure.
            self._stats.failed += 1
            logger.debug(f"Queue job {job.name} was cancelled from within")
            self._settle(job, exc=RuntimeError(f"{job.name} was cancelled"))
        except asyncio.TimeoutError as e:
            self._stats.timed_out += 1
            self._stats.failed += 1
            logger.warning(f"Queue job {job.name} timed out after {self.job_timeout}s")
            self._settle(job, exc=e)
        except Exception as e:
            self._stats.failed += 1
            logger.debug(f"Queue job {job.name} failed: {e}")
            self._settle(job, exc=e)
        else:
            self._stats.completed += 1
            self._settle(job, result=result)

    @staticmethod
    def _settle(job: Job, result: Any = None, exc: BaseException | None = None):
        # The submitter may have stopped waiting; the job still counts as run.
        if job.future.done():
            return
        if exc is not None:
            job.future.set_exception(exc)
        else:
            job.future.set_result(result)

    def stats(self) -> QueueStats:
        self._stats.pending = len(self._pending)
        self._stats.active = self._active
        return QueueStats(**asdict(self._stats))

    async def close(self):
        """Stop the drain loop and cancel every job that has not started."""
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        while self._pending:
            self._pending.popleft().future.cancel()
        self._active = False


@lru_cache(maxsize=1)
def get_request_queue() -> RequestQueue:
    """Return the process-wide queue shared by every catalog call."""
    return RequestQueue(
        delay=settings.RATE_LIMIT_DELAY_MS / 1000,
        job_timeout=settings.QUEUE_JOB_TIMEOUT_SECONDS,
    )
