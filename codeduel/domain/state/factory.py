"""
상태 저장소 어댑터 팩토리
환경에 따라 적절한 어댑터 생성
"""
from codeduel.core.config import settings
from codeduel.domain.state.adapters.base import StateBackend
from codeduel.domain.state.adapters.memory import MemoryStateBackend
from codeduel.domain.state.adapters.redis import RedisStateBackend
from codeduel.infrastructure.cache.redis_client import redis_client


def create_state_backend() -> StateBackend:
    """
    환경에 따라 적절한 상태 저장소 어댑터 생성

    설정:
    - USE_REDIS_STATE=True: Redis 어댑터 사용 (프로덕션)
    - USE_REDIS_STATE=False: 메모리 어댑터 사용 (개발/테스트)
    """
    if settings.USE_REDIS_STATE:
        return RedisStateBackend(redis_client)
    return MemoryStateBackend()
