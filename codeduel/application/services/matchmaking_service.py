"""
매치메이킹 서비스

[페어링 규칙]
1. 상대를 찾으면 두 대기열 항목을 먼저 제거한 뒤 매치를 생성합니다.
   대기열에 없는 항목은 다시 페어링될 수 없으므로 중복 매치가 생기지 않습니다.
2. 상대 제거에 실패하면 (다른 액터가 먼저 가져감) 자신을 원래 대기 시각으로 되돌립니다.
3. 매치 생성이 실패하면 두 플레이어를 원래 레이팅/대기 시각으로 재등록합니다.
"""
import logging
import math
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from codeduel.application.services.match_service import MatchService
from codeduel.core.exceptions import ConflictError, NotFoundError
from codeduel.domain.matchmaking import LobbyQueue
from codeduel.domain.models import MatchDetails, QueueEntry
from codeduel.domain.state import StateStore
from codeduel.infrastructure.repositories import PlayerRepository

logger = logging.getLogger(__name__)

# 대기 인원 1명당 예상 대기 시간 (초)
WAIT_SECONDS_PER_PLAYER = 10


class MatchmakingService:
    """로비 대기열 관리 및 페어링"""

    def __init__(
        self,
        lobby_queue: LobbyQueue,
        match_service: MatchService,
        state_store: StateStore,
        session_factory: async_sessionmaker,
    ):
        self.queue = lobby_queue
        self.match_service = match_service
        self.state = state_store
        self.session_factory = session_factory

    async def join(self, player_id: str) -> Tuple[QueueEntry, int, int]:
        """
        로비 대기열 등록

        레이팅은 매 등록 시 DB에서 다시 읽습니다 (직전 매치 결과 반영).

        Returns:
            (대기열 항목, 순번, 예상 대기 시간(초))

        Raises:
            NotFoundError: 플레이어 없음
            ConflictError: 이미 진행 중인 매치가 있음
        """
        if await self.state.get_match_by_player(player_id):
            raise ConflictError("Already in an active match")

        async with self.session_factory() as db:
            player = await PlayerRepository(db).get_by_id(player_id)
        if not player:
            raise NotFoundError(f"Player not found: {player_id}")

        entry = await self.queue.join(player.id, player.rating)
        position = await self.queue.position(player.id)
        estimated_wait = math.ceil(await self.queue.size() * WAIT_SECONDS_PER_PLAYER)
        logger.info(
            f"[Matchmaking] 대기열 등록 - player_id: {player_id}, "
            f"rating: {player.rating}, position: {position}"
        )
        return entry, position, estimated_wait

    async def leave(self, player_id: str) -> bool:
        removed = await self.queue.leave(player_id)
        if removed:
            logger.info(f"[Matchmaking] 대기열 이탈 - player_id: {player_id}")
        return removed

    async def pair_player(self, entry: QueueEntry) -> Optional[MatchDetails]:
        """
        대기열 항목 하나에 대해 상대 탐색 및 매치 생성

        Returns:
            생성된 매치, 상대가 없거나 생성에 실패하면 None
        """
        opponent_id = await self.queue.find_candidate_with_expanding_range(
            entry.player_id, entry.rating
        )
        if not opponent_id:
            return None

        opponent = await self.queue.get_entry(opponent_id)
        if not opponent:
            return None

        # 매치 생성 전에 두 항목을 먼저 제거
        if not await self.queue.leave(entry.player_id):
            return None
        if not await self.queue.leave(opponent_id):
            await self.queue.join(entry.player_id, entry.rating, joined_at=entry.joined_at)
            return None

        try:
            match = await self.match_service.create_match(entry.player_id, opponent_id)
        except Exception as e:
            logger.error(
                f"[Matchmaking] 매치 생성 실패, 대기열 복원 - "
                f"{entry.player_id} vs {opponent_id}: {str(e)}"
            )
            await self.queue.join(entry.player_id, entry.rating, joined_at=entry.joined_at)
            await self.queue.join(opponent.player_id, opponent.rating, joined_at=opponent.joined_at)
            return None

        logger.info(f"[Matchmaking] 매칭 성공 - {entry.player_id} vs {opponent_id}, match_id: {match.id}")
        return match

    async def sweep(self) -> int:
        """
        대기열 전체 페어링 스윕

        Returns:
            이번 스윕에서 생성한 매치 수
        """
        paired = set()
        created = 0

        for entry in await self.queue.entries():
            if entry.player_id in paired:
                continue
            # 같은 스윕에서 이미 다른 항목과 페어링되었을 수 있음
            if not await self.queue.contains(entry.player_id):
                continue

            match = await self.pair_player(entry)
            if match:
                paired.update(match.player_ids)
                created += 1

        if created:
            logger.info(f"[Matchmaking] 스윕 완료 - 생성된 매치: {created}")
        return created
