"""
Redis 기반 상태 저장소 어댑터 (프로덕션용)

Redis 오류는 모두 InfraError로 변환합니다. 저장소가 없으면 오래된 상태로
진행하지 않고 즉시 실패합니다.
"""
from typing import Dict, List, Optional, Tuple

from codeduel.domain.state.adapters.base import StateBackend
from codeduel.infrastructure.cache.redis_client import RedisClient, infra_errors

# 값이 일치할 때만 삭제
_DELETE_IF_VALUE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""

_infra_errors = infra_errors("State store")


class RedisStateBackend(StateBackend):
    """Redis 기반 상태 저장소 (프로덕션용)"""

    def __init__(self, redis: RedisClient):
        """
        Args:
            redis: Redis 클라이언트 인스턴스
        """
        self.redis = redis

    # ===== Key-Value =====

    @_infra_errors
    async def get(self, key: str) -> Optional[str]:
        return await self.redis.client.get(key)

    @_infra_errors
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        return bool(await self.redis.client.set(key, value, ex=ttl_seconds))

    @_infra_errors
    async def set_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        return bool(await self.redis.client.set(key, value, ex=ttl_seconds, nx=True))

    @_infra_errors
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.redis.client.delete(*keys)

    @_infra_errors
    async def delete_if_value(self, key: str, value: str) -> bool:
        result = await self.redis.client.eval(_DELETE_IF_VALUE_SCRIPT, 1, key, value)
        return bool(result)

    @_infra_errors
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self.redis.client.expire(key, ttl_seconds))

    # ===== Sorted Set =====

    @_infra_errors
    async def zadd(self, key: str, member: str, score: float) -> int:
        return await self.redis.client.zadd(key, {member: score})

    @_infra_errors
    async def zrem(self, key: str, member: str) -> int:
        return await self.redis.client.zrem(key, member)

    @_infra_errors
    async def zrank(self, key: str, member: str) -> Optional[int]:
        return await self.redis.client.zrank(key, member)

    @_infra_errors
    async def zscore(self, key: str, member: str) -> Optional[float]:
        return await self.redis.client.zscore(key, member)

    @_infra_errors
    async def zcard(self, key: str) -> int:
        return await self.redis.client.zcard(key)

    @_infra_errors
    async def zrangebyscore(
        self, key: str, min_score: float, max_score: float
    ) -> List[Tuple[str, float]]:
        rows = await self.redis.client.zrangebyscore(key, min_score, max_score, withscores=True)
        return [(member, float(score)) for member, score in rows]

    @_infra_errors
    async def zrange(self, key: str) -> List[Tuple[str, float]]:
        rows = await self.redis.client.zrange(key, 0, -1, withscores=True)
        return [(member, float(score)) for member, score in rows]

    # ===== Hash =====

    @_infra_errors
    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        return await self.redis.client.hset(key, mapping=mapping)

    @_infra_errors
    async def hget(self, key: str, field: str) -> Optional[str]:
        return await self.redis.client.hget(key, field)

    @_infra_errors
    async def hgetall(self, key: str) -> Dict[str, str]:
        return await self.redis.client.hgetall(key)

    # ===== List =====

    @_infra_errors
    async def lpush_trim(
        self, key: str, value: str, max_length: int, ttl_seconds: Optional[int] = None
    ) -> int:
        # MULTI/EXEC로 묶어 push와 trim 사이에 다른 쓰기가 끼지 않도록 함
        async with self.redis.client.pipeline(transaction=True) as pipe:
            pipe.lpush(key, value)
            pipe.ltrim(key, 0, max_length - 1)
            if ttl_seconds:
                pipe.expire(key, ttl_seconds)
            pipe.llen(key)
            results = await pipe.execute()
        return results[-1]

    @_infra_errors
    async def lrange(self, key: str, start: int, stop: int) -> List[str]:
        return await self.redis.client.lrange(key, start, stop)

    # ===== Set =====

    @_infra_errors
    async def sadd(self, key: str, member: str) -> int:
        return await self.redis.client.sadd(key, member)

    @_infra_errors
    async def srem(self, key: str, member: str) -> int:
        return await self.redis.client.srem(key, member)

    @_infra_errors
    async def scard(self, key: str) -> int:
        return await self.redis.client.scard(key)

    @_infra_errors
    async def smembers(self, key: str) -> List[str]:
        return sorted(await self.redis.client.smembers(key))

    async def ping(self) -> bool:
        return await self.redis.ping()
