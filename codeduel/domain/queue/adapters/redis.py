"""
Redis 기반 큐 어댑터 (프로덕션용)
"""
import json
from typing import Optional

from codeduel.core.config import settings
from codeduel.domain.queue.adapters.base import ExecutionJob, ExecutionResult, QueueAdapter
from codeduel.infrastructure.cache.redis_client import RedisClient, infra_errors

_infra_errors = infra_errors("Execution queue")


class RedisQueueAdapter(QueueAdapter):
    """Redis 기반 큐 (프로덕션용)"""

    def __init__(self, redis: RedisClient):
        """
        Args:
            redis: Redis 클라이언트 인스턴스
        """
        self.redis = redis
        self.queue_key = "execution_queue:pending"
        self.result_prefix = "execution_result:"
        self.status_prefix = "execution_status:"
        self.default_ttl = settings.EXECUTION_RESULT_TTL_SECONDS

    @_infra_errors
    async def enqueue(self, job: ExecutionJob) -> str:
        """Redis List에 작업 추가"""
        job_json = json.dumps(job.to_dict(), ensure_ascii=False)

        # 상태를 먼저 기록해야 worker가 바로 꺼내도 pending → processing 순서가 유지됨
        await self.redis.set(
            f"{self.status_prefix}{job.job_id}",
            "pending",
            ttl_seconds=self.default_ttl
        )
        await self.redis.client.lpush(self.queue_key, job_json)

        return job.job_id

    @_infra_errors
    async def dequeue(self, timeout: float = 1.0) -> Optional[ExecutionJob]:
        """Redis List에서 작업 가져오기 (BRPOP - 블로킹, FIFO)"""
        result = await self.redis.client.brpop(self.queue_key, timeout=timeout)

        if result:
            _, job_json = result
            job = ExecutionJob.from_dict(json.loads(job_json))

            await self.redis.set(
                f"{self.status_prefix}{job.job_id}",
                "processing",
                ttl_seconds=self.default_ttl
            )

            return job

        return None

    @_infra_errors
    async def get_result(self, job_id: str) -> Optional[ExecutionResult]:
        """Redis에서 결과 조회"""
        result_data = await self.redis.get_json(f"{self.result_prefix}{job_id}")

        if result_data:
            return ExecutionResult.from_dict(result_data)

        return None

    @_infra_errors
    async def get_status(self, job_id: str) -> str:
        """Redis에서 상태 조회"""
        status = await self.redis.get(f"{self.status_prefix}{job_id}")

        if status:
            return status
        return "unknown"

    @_infra_errors
    async def save_result(self, job_id: str, result: ExecutionResult) -> bool:
        """Redis에 결과 저장"""
        await self.redis.set_json(
            f"{self.result_prefix}{job_id}",
            result.to_dict(),
            ttl_seconds=self.default_ttl
        )

        await self.redis.set(
            f"{self.status_prefix}{job_id}",
            "completed",
            ttl_seconds=self.default_ttl
        )

        return True

    @_infra_errors
    async def set_status(self, job_id: str, status: str) -> bool:
        """Redis에 상태 설정"""
        await self.redis.set(
            f"{self.status_prefix}{job_id}",
            status,
            ttl_seconds=self.default_ttl
        )
        return True

    @_infra_errors
    async def pending_count(self) -> int:
        return await self.redis.client.llen(self.queue_key)
