"""
Execution Worker
큐에서 코드 실행 작업을 가져와서 Piston API로 채점하고 결과를 발행

[처리 규칙]
- 동시 처리 N개 (기본 5), 초당 투입 10개 제한
- 자동 재시도 없음: 실패도 결과로 보고합니다
- 예상치 못한 예외로 작업이 실패해도 합성한 실패 결과를 발행합니다
"""
import asyncio
import logging
import time
from typing import List, Optional

from codeduel.application.services.execution_service import ExecutionPipeline
from codeduel.application.workers.rate_limiting import RateLimiter
from codeduel.core.config import settings
from codeduel.domain.queue import ExecutionJob, ExecutionResult, TestCaseResult
from codeduel.infrastructure.piston.client import PistonClient

logger = logging.getLogger(__name__)


def summarize(results: List[TestCaseResult]) -> str:
    """사람이 읽는 한 줄 요약 (첫 실패 케이스 기준)"""
    passed = sum(1 for r in results if r.passed)
    if passed == len(results):
        return f"All {passed} tests passed!"

    failed = next(r for r in results if not r.passed)
    if failed.error:
        return f"Error: {failed.error}"
    return (
        f"Test failed:\nInput: {failed.input}\n"
        f"Expected: {failed.expected_output}\nGot: {failed.actual_output}"
    )


def aggregate(job: ExecutionJob, results: List[TestCaseResult]) -> ExecutionResult:
    """테스트 케이스 결과 집계"""
    passed = sum(1 for r in results if r.passed)
    first_error = next((r.error for r in results if r.error), None)

    return ExecutionResult(
        job_id=job.job_id,
        match_id=job.match_id,
        player_id=job.player_id,
        mode=job.mode,
        success=passed == len(job.test_cases),
        output=summarize(results),
        error=first_error,
        execution_time=sum(r.execution_time for r in results),
        tests_passed=passed,
        tests_total=len(job.test_cases),
        test_results=results,
    )


class ExecutionWorker:
    """Piston 코드 실행 Worker 풀"""

    def __init__(
        self,
        pipeline: ExecutionPipeline,
        piston_client: Optional[PistonClient] = None,
        concurrency: Optional[int] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.pipeline = pipeline
        self.queue = pipeline.queue
        self.piston_client = piston_client or PistonClient()
        self.concurrency = concurrency or settings.EXECUTION_CONCURRENCY
        self.rate_limiter = rate_limiter or RateLimiter(
            max_calls=settings.EXECUTION_RATE_LIMIT,
            period=settings.EXECUTION_RATE_PERIOD,
        )
        self.running = False

    async def start(self):
        """Worker 시작"""
        self.running = True
        logger.info(f"[ExecutionWorker] Worker 시작 - concurrency: {self.concurrency}")

        try:
            await asyncio.gather(*(self._worker_loop(i) for i in range(self.concurrency)))
        finally:
            self.running = False
            logger.info("[ExecutionWorker] Worker 중지")

    def stop(self):
        """Worker 중지 요청 (진행 중인 작업은 마저 처리)"""
        self.running = False

    async def _worker_loop(self, worker_index: int):
        """Worker 메인 루프"""
        while self.running:
            try:
                job = await self.queue.dequeue(timeout=1.0)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[ExecutionWorker-{worker_index}] 큐 조회 실패: {str(e)}")
                await asyncio.sleep(1.0)
                continue

            if job is None:
                continue

            await self.rate_limiter.acquire()
            await self.process_job(job)

    async def process_job(self, job: ExecutionJob) -> ExecutionResult:
        """
        작업 하나 처리 후 결과 발행

        Returns:
            발행한 결과
        """
        logger.info(f"[ExecutionWorker] 작업 처리 시작 - job_id: {job.job_id}")
        started = time.monotonic()

        try:
            await self.queue.set_status(job.job_id, "processing")
            results = await self.piston_client.run_test_cases(job.language, job.code, job.test_cases)
            result = aggregate(job, results)
            await self.queue.save_result(job.job_id, result)

            logger.info(
                f"[ExecutionWorker] 작업 완료 - job_id: {job.job_id}, "
                f"{result.tests_passed}/{result.tests_total} 통과, "
                f"{int((time.monotonic() - started) * 1000)}ms"
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[ExecutionWorker] 작업 처리 중 오류 - job_id: {job.job_id}: {str(e)}", exc_info=True)
            result = ExecutionResult.failed(
                job,
                str(e) or "Unknown execution error",
                execution_time=int((time.monotonic() - started) * 1000),
            )
            try:
                await self.queue.set_status(job.job_id, "failed")
            except Exception as status_error:
                logger.error(f"[ExecutionWorker] 상태 저장 실패: {str(status_error)}")

        await self.pipeline.publish(result)
        return result
