"""
Unit tests for the serialized, rate-limited request queue.
"""

import asyncio
import time

import pytest

from app.services.request_queue import RequestQueue

# Slack for event loop scheduling jitter
TOLERANCE = 0.01


class Recorder:
    """Builds jobs that log their start/end times and track overlap."""

    def __init__(self):
        self.started: list[tuple[int, float]] = []
        self.finished: list[tuple[int, float]] = []
        self.running = 0
        self.max_running = 0

    def job(self, value, duration: float = 0.0, error: Exception | None = None):
        async def work():
            self.running += 1
            self.max_running = max(self.max_running, self.running)
            self.started.append((value, time.monotonic()))
            try:
                if duration:
                    await asyncio.sleep(duration)
                if error is not None:
                    raise error
                return value
            finally:
                self.finished.append((value, time.monotonic()))
                self.running -= 1

        return work

    @property
    def order(self) -> list:
        return [value for value, _ in self.started]


class TestRequestQueue:
    """Tests for RequestQueue."""

    async def test_results_arrive_in_order_with_spacing(self):
        """Three instant jobs with a 100ms delay take at least two gaps."""
        queue = RequestQueue(delay=0.1)
        recorder = Recorder()

        start = time.monotonic()
        results = await asyncio.gather(*(queue.submit(recorder.job(v)) for v in (1, 2, 3)))
        elapsed = time.monotonic() - start

        assert results == [1, 2, 3]
        assert recorder.order == [1, 2, 3]
        assert elapsed >= 0.2 - TOLERANCE

    async def test_jobs_never_overlap(self):
        queue = RequestQueue(delay=0.0)
        recorder = Recorder()

        await asyncio.gather(*(queue.submit(recorder.job(i, duration=0.01)) for i in range(10)))

        assert recorder.max_running == 1
        for (_, prev_end), (_, next_start) in zip(recorder.finished, recorder.started[1:]):
            assert next_start >= prev_end

    async def test_gap_after_each_job_is_at_least_the_delay(self):
        delay = 0.05
        queue = RequestQueue(delay=delay)
        recorder = Recorder()

        await asyncio.gather(*(queue.submit(recorder.job(i, duration=0.02)) for i in range(4)))

        gaps = [start - end for (_, end), (_, start) in zip(recorder.finished, recorder.started[1:])]
        assert len(gaps) == 3
        assert all(gap >= delay - TOLERANCE for gap in gaps)

    async def test_fifo_order_for_synchronous_submissions(self):
        queue = RequestQueue(delay=0.0)
        recorder = Recorder()

        futures = [queue.submit(recorder.job(i)) for i in range(20)]
        await asyncio.gather(*futures)

        assert recorder.order == list(range(20))

    async def test_caller_sees_result_before_the_delay(self):
        queue = RequestQueue(delay=0.5)
        recorder = Recorder()

        start = time.monotonic()
        first = queue.submit(recorder.job("first"))
        second = queue.submit(recorder.job("second"))

        assert await first == "first"
        assert time.monotonic() - start < 0.25
        assert await second == "second"

    async def test_failure_is_isolated_to_its_caller(self):
        """A rejected job surfaces to its caller and the next job still runs after the delay."""
        delay = 0.1
        queue = RequestQueue(delay=delay)
        recorder = Recorder()

        failing = queue.submit(recorder.job("bad", error=RuntimeError("upstream 500")))
        succeeding = queue.submit(recorder.job("ok"))

        with pytest.raises(RuntimeError, match="upstream 500"):
            await failing
        assert await succeeding == "ok"

        (_, failed_at), _ = recorder.finished
        _, (_, ok_started_at) = recorder.started
        assert ok_started_at - failed_at >= delay - TOLERANCE

        stats = queue.stats()
        assert stats.failed == 1
        assert stats.completed == 1

    async def test_job_raising_synchronously_is_rejected(self):
        queue = RequestQueue(delay=0.0)

        def broken():
            raise ValueError("not even a coroutine")

        with pytest.raises(ValueError):
            await queue.submit(broken)
        assert await queue.submit(Recorder().job("after")) == "after"

    async def test_idle_queue_schedules_nothing(self):
        queue = RequestQueue(delay=0.1)

        await asyncio.sleep(0)

        assert queue.is_active is False
        assert len(queue) == 0
        assert queue._drain_task is None
        stats = queue.stats()
        assert stats.submitted == 0
        assert stats.pending == 0

    async def test_restarts_after_going_idle(self):
        delay = 0.02
        queue = RequestQueue(delay=delay)
        recorder = Recorder()

        assert await queue.submit(recorder.job(1)) == 1
        await asyncio.sleep(delay * 5)
        assert queue.is_active is False

        assert await queue.submit(recorder.job(2)) == 2
        assert recorder.order == [1, 2]

    async def test_submission_during_delay_waits_for_it(self):
        delay = 0.1
        queue = RequestQueue(delay=delay)
        recorder = Recorder()

        assert await queue.submit(recorder.job(1)) == 1
        # The loop is still sleeping off the first job's delay
        assert queue.is_active is True

        assert await queue.submit(recorder.job(2)) == 2
        (_, first_end), _ = recorder.finished
        _, (_, second_start) = recorder.started
        assert second_start - first_end >= delay - TOLERANCE

    async def test_many_concurrent_callers(self):
        """50 jobs from 5 interleaved callers complete exactly once, in submission order."""
        queue = RequestQueue(delay=0.0)
        submitted: list[tuple[int, int]] = []
        executed: list[tuple[int, int]] = []

        def make_job(key):
            async def work():
                executed.append(key)
                return key

            return work

        async def caller(caller_id: int):
            futures = []
            for n in range(10):
                key = (caller_id, n)
                submitted.append(key)
                futures.append(queue.submit(make_job(key)))
                await asyncio.sleep(0)
            return await asyncio.gather(*futures)

        results = await asyncio.gather(*(caller(c) for c in range(5)))

        assert sum(len(r) for r in results) == 50
        assert len(executed) == 50
        assert len(set(executed)) == 50
        assert executed == submitted
        for caller_id, caller_results in enumerate(results):
            assert caller_results == [(caller_id, n) for n in range(10)]

    async def test_job_cancelling_itself_is_an_ordinary_failure(self):
        queue = RequestQueue(delay=0.0)
        recorder = Recorder()

        async def cancels_itself():
            raise asyncio.CancelledError()

        failing = queue.submit(cancels_itself, name="self-cancel")
        after = queue.submit(recorder.job("ok"))

        with pytest.raises(RuntimeError, match="self-cancel was cancelled"):
            await failing
        assert not failing.cancelled()
        assert await after == "ok"
        assert queue.stats().failed == 1

    async def test_job_timeout_rejects_and_moves_on(self):
        queue = RequestQueue(delay=0.0, job_timeout=0.05)
        recorder = Recorder()

        hanging = queue.submit(recorder.job("hang", duration=5))
        after = queue.submit(recorder.job("after"))

        with pytest.raises(asyncio.TimeoutError):
            await hanging
        assert await after == "after"
        assert queue.stats().timed_out == 1

    async def test_abandoned_caller_does_not_block_queue(self):
        queue = RequestQueue(delay=0.0)
        recorder = Recorder()

        slow = queue.submit(recorder.job("slow", duration=0.05))
        fast = queue.submit(recorder.job("fast"))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(asyncio.shield(slow), timeout=0.01)
        slow.cancel()

        assert await fast == "fast"
        # The slow job still held its slot until it finished
        assert recorder.order == ["slow", "fast"]

    async def test_close_cancels_pending_jobs(self):
        queue = RequestQueue(delay=1.0)
        recorder = Recorder()

        first = queue.submit(recorder.job(1))
        second = queue.submit(recorder.job(2))
        assert await first == 1

        await queue.close()

        assert second.cancelled()
        assert queue.is_active is False
        assert recorder.order == [1]

    def test_submit_requires_running_loop(self):
        queue = RequestQueue(delay=0.0)

        with pytest.raises(RuntimeError):
            queue.submit(Recorder().job(1))

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            RequestQueue(delay=-1)
