"""
Redis 클라이언트 관리
로비 큐, 매치 타이머, 채팅, 관전자, 코드 실행 큐에 사용
"""
import functools
import json
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from codeduel.core.config import settings
from codeduel.core.exceptions import InfraError


def infra_errors(component: str):
    """Redis 오류를 InfraError로 변환하는 메서드 데코레이터"""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except RedisError as e:
                raise InfraError(f"{component} unavailable: {str(e)}") from e
        return wrapper
    return decorator


class RedisClient:
    """Redis 비동기 클라이언트 래퍼"""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        """Redis 연결 초기화"""
        self._pool = ConnectionPool.from_url(
            self.url,
            max_connections=20,
            decode_responses=True,
        )
        self._client = redis.Redis(connection_pool=self._pool)
        # 연결 테스트
        await self._client.ping()

    async def close(self):
        """Redis 연결 종료"""
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """연결 상태 확인"""
        try:
            return bool(await self.client.ping())
        except Exception:
            return False

    # ===== 기본 Key-Value 연산 =====

    async def get(self, key: str) -> Optional[str]:
        """키 값 조회"""
        return await self.client.get(key)

    async def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None
    ) -> bool:
        """키 값 설정"""
        if ttl_seconds:
            return await self.client.setex(key, ttl_seconds, value)
        return await self.client.set(key, value)

    async def delete(self, key: str) -> int:
        """키 삭제"""
        return await self.client.delete(key)

    # ===== JSON 데이터 연산 =====

    async def get_json(self, key: str) -> Optional[dict]:
        """JSON 데이터 조회"""
        data = await self.get(key)
        if data:
            return json.loads(data)
        return None

    async def set_json(
        self,
        key: str,
        value: dict,
        ttl_seconds: Optional[int] = None
    ) -> bool:
        """JSON 데이터 저장"""
        return await self.set(key, json.dumps(value, ensure_ascii=False), ttl_seconds)


# 싱글톤 인스턴스
redis_client = RedisClient()


async def get_redis() -> RedisClient:
    """FastAPI 의존성 주입용"""
    return redis_client
