"""
상태 저장소 어댑터 인터페이스 정의

여러 액터(연결 핸들러, 주기 스윕, 실행 완료 콜백)가 공유하는 임시 상태를 다룹니다.
모든 연산은 단일 키에 대해 원자적이어야 하며, 같은 키에 대한 조회-후-쓰기를
두 번의 호출로 나누어 구현하지 않습니다.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple


class StateBackend(ABC):
    """상태 저장소 어댑터 인터페이스"""

    # ===== Key-Value =====

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """
        키가 없을 때만 설정 (SET NX)

        Returns:
            설정했으면 True, 이미 있었으면 False
        """
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        pass

    @abstractmethod
    async def delete_if_value(self, key: str, value: str) -> bool:
        """
        현재 값이 value와 같을 때만 삭제 (compare-and-delete)

        Returns:
            삭제했으면 True
        """
        pass

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        pass

    # ===== Sorted Set (로비 큐) =====

    @abstractmethod
    async def zadd(self, key: str, member: str, score: float) -> int:
        pass

    @abstractmethod
    async def zrem(self, key: str, member: str) -> int:
        """
        Returns:
            실제로 제거된 멤버 수 (0이면 이미 없었음)
        """
        pass

    @abstractmethod
    async def zrank(self, key: str, member: str) -> Optional[int]:
        pass

    @abstractmethod
    async def zscore(self, key: str, member: str) -> Optional[float]:
        pass

    @abstractmethod
    async def zcard(self, key: str) -> int:
        pass

    @abstractmethod
    async def zrangebyscore(
        self, key: str, min_score: float, max_score: float
    ) -> List[Tuple[str, float]]:
        """점수 오름차순, 동점이면 멤버 사전순"""
        pass

    @abstractmethod
    async def zrange(self, key: str) -> List[Tuple[str, float]]:
        """전체 멤버 (점수 오름차순)"""
        pass

    # ===== Hash =====

    @abstractmethod
    async def hset(self, key: str, mapping: Dict[str, str]) -> int:
        pass

    @abstractmethod
    async def hget(self, key: str, field: str) -> Optional[str]:
        pass

    @abstractmethod
    async def hgetall(self, key: str) -> Dict[str, str]:
        pass

    # ===== List (채팅 기록) =====

    @abstractmethod
    async def lpush_trim(
        self, key: str, value: str, max_length: int, ttl_seconds: Optional[int] = None
    ) -> int:
        """
        앞에 추가 후 max_length로 자르기 (한 번의 원자적 묶음)

        Returns:
            추가 후 리스트 길이
        """
        pass

    @abstractmethod
    async def lrange(self, key: str, start: int, stop: int) -> List[str]:
        pass

    # ===== Set (관전자, 진행 중 매치) =====

    @abstractmethod
    async def sadd(self, key: str, member: str) -> int:
        pass

    @abstractmethod
    async def srem(self, key: str, member: str) -> int:
        pass

    @abstractmethod
    async def scard(self, key: str) -> int:
        pass

    @abstractmethod
    async def smembers(self, key: str) -> List[str]:
        pass

    # ===== 기타 =====

    @abstractmethod
    async def ping(self) -> bool:
        pass
