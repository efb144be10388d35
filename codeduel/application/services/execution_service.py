"""
코드 실행 파이프라인

작업을 실행 큐에 넣고, 워커가 완료한 결과를 구독자에게 전달합니다.
작업마다 정확히 한 번 results 채널이 발행됩니다 (큐 레벨 실패 포함).
"""
import logging
from typing import Any, Dict

from codeduel.core.events import Channel
from codeduel.domain.queue import ExecutionJob, ExecutionResult, QueueAdapter

logger = logging.getLogger(__name__)


class ExecutionPipeline:
    """실행 큐 + 완료 결과 채널"""

    def __init__(self, queue: QueueAdapter):
        self.queue = queue
        self.results: Channel[ExecutionResult] = Channel("execution_results")

    async def submit(self, job: ExecutionJob) -> str:
        """
        실행 작업 등록 (자동 재시도 없음)

        Returns:
            job_id
        """
        job_id = await self.queue.enqueue(job)
        logger.info(
            f"[ExecutionPipeline] 작업 등록 - job_id: {job_id}, mode: {job.mode.value}, "
            f"language: {job.language}, tests: {len(job.test_cases)}"
        )
        return job_id

    async def publish(self, result: ExecutionResult) -> None:
        await self.results.publish(result)

    async def get_stats(self) -> Dict[str, Any]:
        return {
            "pending": await self.queue.pending_count(),
            "subscribers": self.results.subscriber_count,
        }
