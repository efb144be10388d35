"""
큐 시스템 모듈
Piston 코드 실행을 위한 큐 어댑터
"""
from codeduel.domain.queue.factory import create_queue_adapter
from codeduel.domain.queue.adapters.base import (
    ExecutionJob,
    ExecutionMode,
    ExecutionResult,
    QueueAdapter,
    TestCaseResult,
    make_job_id,
)

__all__ = [
    "create_queue_adapter",
    "ExecutionJob",
    "ExecutionMode",
    "ExecutionResult",
    "QueueAdapter",
    "TestCaseResult",
    "make_job_id",
]
