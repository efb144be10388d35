"""
Execution Worker 테스트
"""
import asyncio

import pytest

from codeduel.application.workers.execution_worker import ExecutionWorker, aggregate, summarize
from codeduel.application.workers.rate_limiting import RateLimiter
from codeduel.domain.models import TestCase
from codeduel.domain.queue import ExecutionJob, ExecutionMode, TestCaseResult


def _case(passed, actual="3", error=None, time_ms=10):
    return TestCaseResult(
        input="1 2",
        expected_output="3",
        actual_output=actual,
        passed=passed,
        execution_time=time_ms,
        error=error,
    )


def _job(job_id="m1-alice-1", mode=ExecutionMode.SUBMIT, cases=2):
    return ExecutionJob(
        job_id=job_id,
        match_id="m1",
        player_id="alice",
        code="print(3)",
        language="python",
        problem_id="problem-sum",
        test_cases=[TestCase(input="1 2", expected_output="3") for _ in range(cases)],
        mode=mode,
    )


class StubPiston:
    def __init__(self, results=None, error=None):
        self.results = results
        self.error = error
        self.calls = 0
        self.closed = False

    async def run_test_cases(self, language, code, test_cases):
        self.calls += 1
        if self.error:
            raise self.error
        return self.results

    async def close(self):
        self.closed = True


def test_summary_all_passed():
    assert summarize([_case(True), _case(True)]) == "All 2 tests passed!"


def test_summary_reports_first_failure_diff():
    summary = summarize([_case(True), _case(False, actual="4"), _case(False, error="boom")])
    assert summary == "Test failed:\nInput: 1 2\nExpected: 3\nGot: 4"


def test_summary_reports_error():
    assert summarize([_case(False, actual="", error="SyntaxError")]) == "Error: SyntaxError"


def test_aggregate_counts_and_first_error():
    results = [_case(True, time_ms=5), _case(False, error="Timeout", time_ms=7)]
    result = aggregate(_job(), results)

    assert result.tests_passed == 1
    assert result.tests_total == 2
    assert result.success is False
    assert result.error == "Timeout"
    assert result.execution_time == 12
    assert result.solved is False


def test_aggregate_full_pass_is_solved():
    result = aggregate(_job(), [_case(True), _case(True)])
    assert result.success is True
    assert result.error is None
    assert result.solved is True


@pytest.mark.asyncio
async def test_process_job_saves_and_publishes_once(pipeline):
    published = []

    async def collect(result):
        published.append(result)

    pipeline.results.subscribe(collect)
    worker = ExecutionWorker(pipeline, StubPiston([_case(True), _case(True)]), concurrency=1)

    job = _job()
    await pipeline.submit(job)
    result = await worker.process_job(await pipeline.queue.dequeue(timeout=0.1))

    assert published == [result]
    assert result.success is True
    assert await pipeline.queue.get_status(job.job_id) == "completed"
    assert (await pipeline.queue.get_result(job.job_id)).tests_passed == 2


@pytest.mark.asyncio
async def test_unexpected_failure_still_publishes_synthesized_result(pipeline):
    published = []

    async def collect(result):
        published.append(result)

    pipeline.results.subscribe(collect)
    piston = StubPiston(error=RuntimeError("worker crashed"))
    worker = ExecutionWorker(pipeline, piston, concurrency=1)

    job = _job(mode=ExecutionMode.RUN, cases=3)
    result = await worker.process_job(job)

    assert published == [result]
    assert result.success is False
    assert result.is_run is True
    assert result.tests_total == 3
    assert result.error == "worker crashed"
    assert await pipeline.queue.get_status(job.job_id) == "failed"
    # 자동 재시도 없음
    assert piston.calls == 1


@pytest.mark.asyncio
async def test_worker_loop_drains_queue(pipeline):
    published = []

    async def collect(result):
        published.append(result.job_id)

    pipeline.results.subscribe(collect)
    worker = ExecutionWorker(pipeline, StubPiston([_case(True)]), concurrency=2)

    for i in range(3):
        await pipeline.submit(_job(job_id=f"job-{i}", cases=1))

    task = asyncio.create_task(worker.start())
    for _ in range(100):
        if len(published) == 3:
            break
        await asyncio.sleep(0.01)
    worker.stop()
    await asyncio.wait_for(task, timeout=3)

    assert sorted(published) == ["job-0", "job-1", "job-2"]
    assert (await pipeline.get_stats())["pending"] == 0


@pytest.mark.asyncio
async def test_rate_limiter_blocks_after_limit(clock):
    limiter = RateLimiter(max_calls=2, period=1.0, clock=clock)

    assert await limiter._check_rate_limit() == 0.0
    assert await limiter._check_rate_limit() == 0.0
    assert await limiter._check_rate_limit() == pytest.approx(1.0)

    clock.advance(1.0)
    assert await limiter._check_rate_limit() == 0.0
