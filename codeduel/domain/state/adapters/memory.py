"""
메모리 기반 상태 저장소 어댑터 (개발/테스트용)

단일 프로세스 전용. 각 연산은 await 없이 끝나므로 이벤트 루프 안에서 원자적입니다.
"""
import time
from typing import Dict, List, Optional, Set, Tuple

from codeduel.domain.state.adapters.base import StateBackend


class MemoryStateBackend(StateBackend):
    """메모리 기반 상태 저장소 (개발/테스트용)"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self.strings: Dict[str, str] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.lists: Dict[str, List[str]] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.expiry: Dict[str, float] = {}

    def _containers(self):
        return (self.strings, self.zsets, self.hashes, self.lists, self.sets)

    def _purge_if_expired(self, key: str):
        deadline = self.expiry.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._drop(key)

    def _drop(self, key: str) -> bool:
        removed = False
        for container in self._containers():
            if container.pop(key, None) is not None:
                removed = True
        self.expiry.pop(key, None)
        return removed

    def _exists(self, key: str) -> bool:
        self._purge_if_expired(key)
        return any(key in container for container in self._containers())

    def _apply_ttl(self, key: str, ttl_seconds: Optional[int]):
        if ttl_seconds:
            self.expiry[key] = self._clock() + ttl_seconds
        else:
            self.expiry.pop(key, None)

    # ===== Key-Value =====

    async def get(self, key: str) -> Optional[str]:
        self._purge_if_expired(key)
        return self.strings.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        self.strings[key] = value
        self._apply_ttl(key, ttl_seconds)
        return True

    async def set_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        if self._exists(key):
            return False
        self.strings[key] = value
        self._apply_ttl(key, ttl_seconds)
        return True

    async def delete(self, *keys: str) -> int:
        count = 0
        for key in keys:
            self._purge_if_expired(key)
            if self._drop(key):
                count += 1
        return count

    async def delete_if_value(self, key: str, value: str) -> bool:
        self._purge_if_expired(key)
        if self.strings.get(key) == value:
            self._drop(key)
            return True
        return False

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        if not self._exists(key):
            return False
        self.expiry[key] = self._clock() + ttl_seconds
        return True

    # ===== Sorted Set =====

    def _zset(self, key: str) -> Dict[str, float]:
        self._purge_if_expired(key)
        return self.zsets.get(key, {})

    def _sorted(self, key: str) -> List[Tuple[str, float]]:
        return sorted(self._zset(key).items(), key=lambda item: (item[1], item[0]))

    async def zadd(self, key: str, member: str, score: float) -> int:
        self._purge_if_expired(key)
        zset = self.zsets.setdefault(key, {})
        added = 0 if member in zset else 1
        zset[member] = float(score)
        return added

    async def zrem(self, key: str, member: str) -> int:
        zset = self._zset(key)
        if member not in zset:
            return 0
        del zset[member]
        if not zset:
            self._drop(key)
        return 1

    async def zrank(self, key: str, member: str) -> Optional[int]:
        for rank, (name, _) in enumerate(self._sorted(key)):
            if name == member:
                return rank
        return None

    async def zscore(self, key: str, member: str) -> Optional[float]:
        return self._zset(key).get(member)

    async def zcard(self, key: str) -> int:
        return len(self._zset(key))

    async def zrangebyscore(
        self, key: str, min_score: float, max_score: float
    ) -> List[Tuple[str, float]]:
        return [
            (member, score) for member, score in self._sorted(key)
            if min_score <= score <= max_score
        ]

    async def zrange(self, key: str) -> List[Tuple[str, float]]:
        return self._sorted(key)

    # ===== Hash =====

    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        self._purge_if_expired(key)
        fields = self.hashes.setdefault(key, {})
        added = sum(1 for field in mapping if field not in fields)
        fields.update(mapping)
        return added

    async def hget(self, key: str, field: str) -> Optional[str]:
        self._purge_if_expired(key)
        return self.hashes.get(key, {}).get(field)

    async def hgetall(self, key: str) -> Dict[str, str]:
        self._purge_if_expired(key)
        return dict(self.hashes.get(key, {}))

    # ===== List =====

    async def lpush_trim(
        self, key: str, value: str, max_length: int, ttl_seconds: Optional[int] = None
    ) -> int:
        self._purge_if_expired(key)
        items = self.lists.setdefault(key, [])
        items.insert(0, value)
        del items[max_length:]
        if ttl_seconds:
            self.expiry[key] = self._clock() + ttl_seconds
        return len(items)

    async def lrange(self, key: str, start: int, stop: int) -> List[str]:
        self._purge_if_expired(key)
        items = self.lists.get(key, [])
        end = None if stop == -1 else stop + 1
        return list(items[start:end])

    # ===== Set =====

    async def sadd(self, key: str, member: str) -> int:
        self._purge_if_expired(key)
        members = self.sets.setdefault(key, set())
        if member in members:
            return 0
        members.add(member)
        return 1

    async def srem(self, key: str, member: str) -> int:
        self._purge_if_expired(key)
        members = self.sets.get(key)
        if not members or member not in members:
            return 0
        members.discard(member)
        if not members:
            self._drop(key)
        return 1

    async def scard(self, key: str) -> int:
        self._purge_if_expired(key)
        return len(self.sets.get(key, set()))

    async def smembers(self, key: str) -> List[str]:
        self._purge_if_expired(key)
        return sorted(self.sets.get(key, set()))

    async def ping(self) -> bool:
        return True
