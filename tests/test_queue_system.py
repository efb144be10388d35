"""
큐 시스템 테스트
"""
import pytest

from codeduel.core.config import settings
from codeduel.core.exceptions import InfraError
from codeduel.domain.models import TestCase
from codeduel.domain.queue.adapters.base import (
    ExecutionJob,
    ExecutionMode,
    ExecutionResult,
    make_job_id,
)
from codeduel.domain.queue.adapters.redis import RedisQueueAdapter
from codeduel.domain.queue.factory import create_queue_adapter


def _job(job_id: str, mode: ExecutionMode = ExecutionMode.SUBMIT) -> ExecutionJob:
    return ExecutionJob(
        job_id=job_id,
        match_id="m1",
        player_id="alice",
        code="print(sum(map(int, input().split())))",
        language="python",
        problem_id="problem-sum",
        test_cases=[TestCase(input="1 2", expected_output="3")],
        mode=mode,
    )


def test_job_id_unique_within_same_millisecond():
    first = make_job_id("m1", "alice", 1.5)
    second = make_job_id("m1", "alice", 1.5)

    assert first.startswith("m1-alice-1500-")
    assert first != second


def test_result_payload_exposes_run_flag():
    run = ExecutionResult(
        job_id="j1", match_id="m1", player_id="alice",
        mode=ExecutionMode.RUN, success=True, output="All 2 tests passed!",
        tests_passed=2, tests_total=2,
    )
    payload = run.to_dict()
    assert payload["isRun"] is True
    assert payload["testsPassed"] == 2
    assert run.solved is False
    assert ExecutionResult.from_dict(payload).mode is ExecutionMode.RUN


def test_submit_with_no_tests_is_not_solved():
    result = ExecutionResult(
        job_id="j1", match_id="m1", player_id="alice",
        mode=ExecutionMode.SUBMIT, success=True, output="All 0 tests passed!",
        tests_passed=0, tests_total=0,
    )
    assert result.solved is False


def test_failed_result_counts_all_cases():
    result = ExecutionResult.failed(_job("j1"), "boom")
    assert result.success is False
    assert result.tests_total == 1
    assert result.tests_passed == 0
    assert result.error == "boom"


@pytest.mark.asyncio
async def test_memory_queue_adapter(monkeypatch):
    """메모리 큐 어댑터 테스트"""
    # 메모리 모드로 설정
    monkeypatch.setattr(settings, "USE_REDIS_QUEUE", False)
    queue = create_queue_adapter()

    job_id = await queue.enqueue(_job("test_job_1"))
    assert job_id == "test_job_1"
    assert await queue.get_status(job_id) == "pending"
    assert await queue.pending_count() == 1

    # 작업 가져오기
    dequeued = await queue.dequeue(timeout=0.1)
    assert dequeued is not None
    assert dequeued.job_id == "test_job_1"
    assert dequeued.test_cases[0].expected_output == "3"
    assert await queue.get_status(job_id) == "processing"

    # 한 작업은 한 번만 꺼내짐
    assert await queue.dequeue(timeout=0.05) is None

    # 결과 저장
    result = ExecutionResult(
        job_id=job_id, match_id="m1", player_id="alice",
        mode=ExecutionMode.SUBMIT, success=True, output="All 1 tests passed!",
        execution_time=12, tests_passed=1, tests_total=1,
    )
    await queue.save_result(job_id, result)

    retrieved = await queue.get_result(job_id)
    assert retrieved is not None
    assert retrieved.output == "All 1 tests passed!"
    assert await queue.get_status(job_id) == "completed"


@pytest.mark.asyncio
async def test_memory_queue_is_fifo(monkeypatch):
    monkeypatch.setattr(settings, "USE_REDIS_QUEUE", False)
    queue = create_queue_adapter()

    for i in range(3):
        await queue.enqueue(_job(f"job-{i}"))

    order = [(await queue.dequeue(timeout=0.1)).job_id for _ in range(3)]
    assert order == ["job-0", "job-1", "job-2"]


@pytest.mark.asyncio
async def test_redis_queue_errors_become_infra_errors(unreachable_redis):
    queue = RedisQueueAdapter(unreachable_redis)

    with pytest.raises(InfraError):
        await queue.enqueue(_job("job-1"))
    with pytest.raises(InfraError):
        await queue.dequeue(timeout=0.1)
    with pytest.raises(InfraError):
        await queue.pending_count()


@pytest.mark.asyncio
async def test_redis_queue_adapter(monkeypatch):
    """Redis 큐 어댑터 테스트 (Redis 연결 필요)"""
    monkeypatch.setattr(settings, "USE_REDIS_QUEUE", True)
    from codeduel.infrastructure.cache.redis_client import redis_client

    try:
        await redis_client.connect()
    except Exception as e:
        pytest.skip(f"Redis 연결 실패: {e}")

    try:
        queue = create_queue_adapter()
        job_id = await queue.enqueue(_job("test_redis_job_1", ExecutionMode.RUN))
        assert await queue.get_status(job_id) == "pending"

        dequeued = await queue.dequeue(timeout=1)
        assert dequeued is not None
        assert dequeued.job_id == "test_redis_job_1"
        assert dequeued.mode is ExecutionMode.RUN

        result = ExecutionResult.failed(dequeued, "sandbox down")
        await queue.save_result(job_id, result)

        retrieved = await queue.get_result(job_id)
        assert retrieved is not None
        assert retrieved.error == "sandbox down"
        assert retrieved.is_run is True
    finally:
        await redis_client.close()
