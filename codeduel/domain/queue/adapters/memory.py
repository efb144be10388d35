"""
메모리 기반 큐 어댑터 (개발/테스트용)
"""
import asyncio
from collections import deque
from typing import Dict, Optional

from codeduel.domain.queue.adapters.base import ExecutionJob, ExecutionResult, QueueAdapter


class MemoryQueueAdapter(QueueAdapter):
    """메모리 기반 큐 (개발/테스트용)"""

    def __init__(self):
        self.queue: deque = deque()
        self.results: Dict[str, ExecutionResult] = {}
        self.status: Dict[str, str] = {}
        self.lock = asyncio.Lock()
        self._available = asyncio.Condition(self.lock)

    async def enqueue(self, job: ExecutionJob) -> str:
        """큐에 작업 추가"""
        async with self._available:
            self.queue.append(job)
            self.status[job.job_id] = "pending"
            self._available.notify()
        return job.job_id

    async def dequeue(self, timeout: float = 1.0) -> Optional[ExecutionJob]:
        """큐에서 작업 가져오기 (비어있으면 timeout까지 대기)"""
        async with self._available:
            if not self.queue:
                try:
                    await asyncio.wait_for(self._available.wait(), timeout)
                except asyncio.TimeoutError:
                    return None
            if self.queue:
                job = self.queue.popleft()
                self.status[job.job_id] = "processing"
                return job
        return None

    async def get_result(self, job_id: str) -> Optional[ExecutionResult]:
        """결과 조회"""
        return self.results.get(job_id)

    async def get_status(self, job_id: str) -> str:
        """상태 조회"""
        return self.status.get(job_id, "unknown")

    async def save_result(self, job_id: str, result: ExecutionResult) -> bool:
        """결과 저장"""
        async with self.lock:
            self.results[job_id] = result
            self.status[job_id] = "completed"
        return True

    async def set_status(self, job_id: str, status: str) -> bool:
        """상태 설정"""
        async with self.lock:
            self.status[job_id] = status
        return True

    async def pending_count(self) -> int:
        return len(self.queue)
