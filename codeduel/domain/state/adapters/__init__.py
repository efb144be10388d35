"""
상태 저장소 어댑터 모듈
"""

from codeduel.domain.state.adapters.base import StateBackend
from codeduel.domain.state.adapters.memory import MemoryStateBackend
from codeduel.domain.state.adapters.redis import RedisStateBackend

__all__ = [
    "StateBackend",
    "MemoryStateBackend",
    "RedisStateBackend",
]
