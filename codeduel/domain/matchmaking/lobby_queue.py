"""
매치메이킹 로비 큐

레이팅을 점수로 하는 sorted set에 대기 플레이어를 보관하고,
대기 시간에 따라 넓어지는 레이팅 범위 안에서 상대를 찾습니다.
"""
import logging
import math
import time
from typing import Callable, List, Optional

from codeduel.core.config import settings
from codeduel.domain.models import QueueEntry
from codeduel.domain.state.adapters.base import StateBackend

logger = logging.getLogger(__name__)

QUEUE_KEY = "lobby:queue"


def compute_search_range(wait_seconds: float) -> int:
    """
    대기 시간 기반 레이팅 탐색 범위

    기본 200, 10초마다 50씩 확장, 최대 500
    """
    steps = math.floor(max(0.0, wait_seconds) / settings.MATCHMAKING_RANGE_STEP_SECONDS)
    expanded = settings.MATCHMAKING_BASE_RANGE + settings.MATCHMAKING_RANGE_STEP * steps
    return min(expanded, settings.MATCHMAKING_MAX_RANGE)


class LobbyQueue:
    """로비 대기열"""

    def __init__(self, backend: StateBackend, clock: Callable[[], float] = time.time):
        self.backend = backend
        self.clock = clock

    @staticmethod
    def _join_time_key(player_id: str) -> str:
        return f"lobby:jointime:{player_id}"

    async def join(self, player_id: str, rating: int, joined_at: Optional[float] = None) -> QueueEntry:
        """
        대기열 등록

        이미 대기 중이면 레이팅만 갱신하고 기존 대기 시작 시각을 유지합니다.
        joined_at을 주면 그 시각으로 복원합니다 (매치 생성 실패 시 재등록).
        """
        await self.backend.zadd(QUEUE_KEY, player_id, rating)
        timestamp = joined_at if joined_at is not None else self.clock()
        if joined_at is not None:
            await self.backend.set(self._join_time_key(player_id), repr(timestamp))
        else:
            await self.backend.set_if_absent(self._join_time_key(player_id), repr(timestamp))
        stored = await self.get_join_time(player_id)
        return QueueEntry(player_id=player_id, rating=rating, joined_at=stored or timestamp)

    async def leave(self, player_id: str) -> bool:
        """
        대기열에서 제거

        Returns:
            실제로 제거했으면 True (다른 액터가 먼저 제거했으면 False)
        """
        removed = await self.backend.zrem(QUEUE_KEY, player_id)
        await self.backend.delete(self._join_time_key(player_id))
        return removed > 0

    async def contains(self, player_id: str) -> bool:
        return await self.backend.zscore(QUEUE_KEY, player_id) is not None

    async def size(self) -> int:
        return await self.backend.zcard(QUEUE_KEY)

    async def position(self, player_id: str) -> int:
        """1부터 시작하는 대기 순번, 대기 중이 아니면 -1"""
        rank = await self.backend.zrank(QUEUE_KEY, player_id)
        return rank + 1 if rank is not None else -1

    async def get_join_time(self, player_id: str) -> Optional[float]:
        value = await self.backend.get(self._join_time_key(player_id))
        return float(value) if value else None

    async def get_entry(self, player_id: str) -> Optional[QueueEntry]:
        score = await self.backend.zscore(QUEUE_KEY, player_id)
        if score is None:
            return None
        joined_at = await self.get_join_time(player_id)
        return QueueEntry(
            player_id=player_id,
            rating=int(score),
            joined_at=joined_at if joined_at is not None else self.clock(),
        )

    async def entries(self) -> List[QueueEntry]:
        """대기열 전체 (대기 시작 순)"""
        result = []
        for player_id, score in await self.backend.zrange(QUEUE_KEY):
            joined_at = await self.get_join_time(player_id)
            result.append(QueueEntry(
                player_id=player_id,
                rating=int(score),
                joined_at=joined_at if joined_at is not None else self.clock(),
            ))
        result.sort(key=lambda entry: (entry.joined_at, entry.player_id))
        return result

    async def find_candidate(self, player_id: str, rating: int, search_range: int) -> Optional[str]:
        """
        레이팅 범위 [rating - range, rating + range] 안의 상대 탐색

        요청자 본인은 제외합니다. 후보가 여럿이면 가장 먼저 대기한 플레이어,
        같으면 레이팅 차이가 작은 쪽, 그래도 같으면 ID 순으로 고릅니다.
        """
        candidates = await self.backend.zrangebyscore(
            QUEUE_KEY, rating - search_range, rating + search_range
        )
        best = None
        for candidate_id, score in candidates:
            if candidate_id == player_id:
                continue
            joined_at = await self.get_join_time(candidate_id)
            key = (
                joined_at if joined_at is not None else float("inf"),
                abs(score - rating),
                candidate_id,
            )
            if best is None or key < best[0]:
                best = (key, candidate_id)
        return best[1] if best else None

    async def find_candidate_with_expanding_range(self, player_id: str, rating: int) -> Optional[str]:
        """대기 시간에 따라 넓어진 범위로 상대 탐색"""
        joined_at = await self.get_join_time(player_id)
        wait_seconds = self.clock() - joined_at if joined_at is not None else 0.0
        search_range = compute_search_range(wait_seconds)
        return await self.find_candidate(player_id, rating, search_range)
