"""
매치 Repository
PostgreSQL에서 매치 기록을 조회하고 관리

[상태 전이]
- 생성 시 바로 IN_PROGRESS
- IN_PROGRESS → COMPLETED / CANCELLED 한 방향만 허용
- 종료 쓰기는 `WHERE status = 'IN_PROGRESS'` 조건부 UPDATE로 수행하여,
  제출 결과와 타임아웃 스윕이 동시에 종료를 시도해도 한쪽만 성공합니다.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from codeduel.infrastructure.persistence.models.enums import MatchStatusEnum
from codeduel.infrastructure.persistence.models.matches import Match


class MatchRepository:
    """매치 데이터 접근 계층"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        match_id: str,
        player1_id: str,
        player2_id: str,
        problem_id: str,
        started_at: Optional[datetime] = None,
    ) -> Match:
        """
        진행 중 매치 생성 (commit은 호출자가 담당)
        """
        match = Match(
            id=match_id,
            player1_id=player1_id,
            player2_id=player2_id,
            problem_id=problem_id,
            status=MatchStatusEnum.IN_PROGRESS,
            started_at=started_at or datetime.now(timezone.utc),
        )
        self.db.add(match)
        await self.db.flush()
        return match

    async def get_by_id(self, match_id: str) -> Optional[Match]:
        result = await self.db.execute(select(Match).where(Match.id == match_id))
        return result.scalar_one_or_none()

    async def finish_if_in_progress(
        self,
        match_id: str,
        status: MatchStatusEnum,
        winner_id: Optional[str] = None,
        ended_at: Optional[datetime] = None,
    ) -> bool:
        """
        IN_PROGRESS일 때만 종료 상태로 전이 (compare-and-swap)

        Returns:
            전이에 성공했으면 True, 이미 종료된 매치면 False
        """
        result = await self.db.execute(
            update(Match)
            .where(Match.id == match_id, Match.status == MatchStatusEnum.IN_PROGRESS)
            .values(
                status=status,
                winner_id=winner_id,
                ended_at=ended_at or datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_active_for_player(self, player_id: str) -> Optional[Match]:
        """플레이어의 진행 중 매치 (가장 최근 시작)"""
        result = await self.db.execute(
            select(Match)
            .where(
                or_(Match.player1_id == player_id, Match.player2_id == player_id),
                Match.status == MatchStatusEnum.IN_PROGRESS,
            )
            .order_by(Match.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_history_for_player(
        self,
        player_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> List[Match]:
        """완료된 매치 기록 (최신순)"""
        result = await self.db.execute(
            select(Match)
            .where(
                or_(Match.player1_id == player_id, Match.player2_id == player_id),
                Match.status == MatchStatusEnum.COMPLETED,
            )
            .order_by(Match.ended_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
