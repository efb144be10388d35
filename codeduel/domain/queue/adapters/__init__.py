"""
큐 어댑터 모듈
"""

from codeduel.domain.queue.adapters.base import (
    ExecutionJob,
    ExecutionMode,
    ExecutionResult,
    QueueAdapter,
    TestCaseResult,
)
from codeduel.domain.queue.adapters.memory import MemoryQueueAdapter
from codeduel.domain.queue.adapters.redis import RedisQueueAdapter

__all__ = [
    "ExecutionJob",
    "ExecutionMode",
    "ExecutionResult",
    "TestCaseResult",
    "QueueAdapter",
    "MemoryQueueAdapter",
    "RedisQueueAdapter",
]
