"""
매치 라이프사이클 서비스

[상태 전이]
IN_PROGRESS → COMPLETED (SOLVED / FORFEIT / TIMEOUT)
IN_PROGRESS → CANCELLED (관리자 취소)

[동시성]
제출 결과, 기권, 타임아웃 스윕이 같은 매치를 동시에 끝내려 할 수 있습니다.
종료 쓰기는 상태 조건부 UPDATE이므로 먼저 도착한 전이 하나만 성공하고,
나머지는 ConflictError를 받습니다. conclude_match()는 이를 조용히 무시합니다.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from codeduel.core.config import settings
from codeduel.core.events import Channel
from codeduel.core.exceptions import ConflictError, NotFoundError, ValidationError
from codeduel.domain.models import (
    ActiveMatchSummary,
    MatchDetails,
    MatchOutcome,
    Player,
    utcnow,
)
from codeduel.domain.rating import calculate_new_ratings
from codeduel.domain.state import StateStore
from codeduel.infrastructure.persistence.models.enums import (
    DifficultyEnum,
    EndReasonEnum,
    MatchStatusEnum,
)
from codeduel.infrastructure.persistence.models.matches import Match
from codeduel.infrastructure.repositories import (
    MatchRepository,
    PlayerRepository,
    ProblemRepository,
)

logger = logging.getLogger(__name__)


class MatchService:
    """매치 생성, 종료, 조회, 만료 처리"""

    def __init__(self, session_factory: async_sessionmaker, state_store: StateStore):
        """
        Args:
            session_factory: DB 세션 팩토리
            state_store: 매치 임시 상태 저장소
        """
        self.session_factory = session_factory
        self.state = state_store
        self.match_created: Channel[MatchDetails] = Channel("match_created")
        self.match_ended: Channel[MatchOutcome] = Channel("match_ended")

    # ===== 생성 =====

    async def create_match(
        self,
        player1_id: str,
        player2_id: str,
        difficulty: Optional[DifficultyEnum] = None,
    ) -> MatchDetails:
        """
        매치 생성

        두 플레이어와 문제를 모두 확인한 뒤에만 INSERT 하므로
        실패 시 반쯤 만들어진 매치가 남지 않습니다.

        Raises:
            NotFoundError: 플레이어 또는 문제가 없음
        """
        async with self.session_factory() as db:
            players = PlayerRepository(db)
            player1 = await players.get_by_id(player1_id)
            player2 = await players.get_by_id(player2_id)
            if not player1 or not player2:
                missing = player1_id if not player1 else player2_id
                raise NotFoundError(f"Player not found: {missing}")

            problem = await ProblemRepository(db).get_random(difficulty)
            if not problem:
                raise NotFoundError("No problem available")

            match_id = str(uuid.uuid4())
            started_at = utcnow()
            await MatchRepository(db).create(
                match_id=match_id,
                player1_id=player1.id,
                player2_id=player2.id,
                problem_id=problem.id,
                started_at=started_at,
            )
            await db.commit()

        end_time = self.state.create_end_time()
        try:
            await self.state.register_match(match_id, player1.id, player2.id, end_time)
        except Exception:
            # 타이머 없는 매치는 영원히 끝나지 않으므로 되돌림
            logger.error(f"[MatchService] 매치 상태 등록 실패, 취소 처리 - match_id: {match_id}")
            async with self.session_factory() as db:
                await MatchRepository(db).finish_if_in_progress(match_id, MatchStatusEnum.CANCELLED)
                await db.commit()
            raise

        details = MatchDetails(
            id=match_id,
            player1=player1,
            player2=player2,
            problem=problem,
            status=MatchStatusEnum.IN_PROGRESS,
            started_at=started_at,
        )
        logger.info(
            f"[MatchService] 매치 생성 - match_id: {match_id}, "
            f"{player1.username}({player1.rating}) vs {player2.username}({player2.rating}), "
            f"problem: {problem.title}"
        )
        await self.match_created.publish(details)
        return details

    # ===== 종료 =====

    async def end_match(
        self,
        match_id: str,
        winner_id: Optional[str],
        reason: EndReasonEnum,
    ) -> MatchOutcome:
        """
        매치 종료 (상태 compare-and-swap)

        winner_id가 없으면 상태만 바꾸고 레이팅은 건드리지 않습니다.

        Raises:
            NotFoundError: 매치 없음
            ConflictError: 이미 종료된 매치
            ValidationError: 승자가 매치 참가자가 아님
        """
        status = (
            MatchStatusEnum.CANCELLED
            if reason == EndReasonEnum.CANCELLED
            else MatchStatusEnum.COMPLETED
        )

        async with self.session_factory() as db:
            matches = MatchRepository(db)
            row = await matches.get_by_id(match_id)
            if not row:
                raise NotFoundError(f"Match not found: {match_id}")
            if row.status != MatchStatusEnum.IN_PROGRESS:
                raise ConflictError(f"Match is not in progress: {match_id}")

            player_ids = [row.player1_id, row.player2_id]
            outcome = MatchOutcome(match_id=match_id, player_ids=player_ids, reason=reason)

            if winner_id is None:
                if not await matches.finish_if_in_progress(match_id, status):
                    raise ConflictError(f"Match already ended: {match_id}")
                await db.commit()
                logger.info(f"[MatchService] 매치 종료 - match_id: {match_id}, reason: {reason.value}")
                return outcome

            if winner_id not in player_ids:
                raise ValidationError(f"{winner_id} is not a player of match {match_id}")
            loser_id = row.player2_id if winner_id == row.player1_id else row.player1_id

            players = PlayerRepository(db)
            winner = await players.get_by_id(winner_id)
            loser = await players.get_by_id(loser_id)
            if not winner or not loser:
                raise NotFoundError(f"Player not found for match {match_id}")

            winner_new, loser_new = calculate_new_ratings(winner.rating, loser.rating)

            # 상태 쓰기가 이후의 종료 시도를 막는 관문
            if not await matches.finish_if_in_progress(match_id, status, winner_id):
                await db.rollback()
                raise ConflictError(f"Match already ended: {match_id}")
            await players.update_rating(winner_id, winner_new)
            await players.update_rating(loser_id, loser_new)
            await db.commit()

        outcome.winner_id = winner_id
        outcome.loser_id = loser_id
        outcome.winner_new_rating = winner_new
        outcome.loser_new_rating = loser_new
        logger.info(
            f"[MatchService] 매치 종료 - match_id: {match_id}, reason: {reason.value}, "
            f"winner: {winner_id} ({winner.rating} → {winner_new}), "
            f"loser: {loser_id} ({loser.rating} → {loser_new})"
        )
        return outcome

    async def conclude_match(
        self,
        match_id: str,
        winner_id: Optional[str],
        reason: EndReasonEnum,
    ) -> Optional[MatchOutcome]:
        """
        매치 종료 + 상태 정리 + 결과 방송

        Returns:
            MatchOutcome, 다른 호출자가 먼저 종료했으면 None
        """
        try:
            outcome = await self.end_match(match_id, winner_id, reason)
        except ConflictError:
            logger.info(f"[MatchService] 이미 종료된 매치 - match_id: {match_id}, reason: {reason.value}")
            return None

        await self._finish(outcome)
        return outcome

    async def cancel_match(self, match_id: str) -> MatchOutcome:
        """
        관리자 취소

        Raises:
            NotFoundError, ConflictError
        """
        outcome = await self.end_match(match_id, None, EndReasonEnum.CANCELLED)
        await self._finish(outcome)
        return outcome

    async def _finish(self, outcome: MatchOutcome) -> None:
        player1_id, player2_id = outcome.player_ids
        await self.state.cleanup_match(outcome.match_id, player1_id, player2_id)
        await self.match_ended.publish(outcome)

    # ===== 조회 =====

    async def get_player(self, player_id: str) -> Optional[Player]:
        async with self.session_factory() as db:
            return await PlayerRepository(db).get_by_id(player_id)

    async def get_match_by_id(self, match_id: str) -> Optional[MatchDetails]:
        async with self.session_factory() as db:
            row = await MatchRepository(db).get_by_id(match_id)
            if not row:
                return None
            return await self._to_details(db, row)

    async def get_user_active_match(self, player_id: str) -> Optional[MatchDetails]:
        """진행 중인 매치 (가장 최근 시작)"""
        async with self.session_factory() as db:
            row = await MatchRepository(db).get_active_for_player(player_id)
            if not row:
                return None
            return await self._to_details(db, row)

    async def get_match_history(
        self,
        player_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> List[MatchDetails]:
        """완료된 매치 기록 (최신순)"""
        async with self.session_factory() as db:
            rows = await MatchRepository(db).get_history_for_player(player_id, limit, offset)
            return [await self._to_details(db, row) for row in rows]

    async def get_active_match_summaries(self) -> List[ActiveMatchSummary]:
        """관전 목록용 진행 중 매치 요약"""
        summaries = []
        for match_id in await self.state.get_active_matches():
            match = await self.get_match_by_id(match_id)
            if not match or not match.is_in_progress:
                continue
            summaries.append(ActiveMatchSummary(
                id=match.id,
                player1=match.player1,
                player2=match.player2,
                problem_title=match.problem.title,
                started_at=match.started_at,
                spectator_count=await self.state.get_spectator_count(match_id),
            ))
        return summaries

    async def _to_details(self, db: AsyncSession, row: Match) -> MatchDetails:
        players = PlayerRepository(db)
        player1 = await players.get_by_id(row.player1_id)
        player2 = await players.get_by_id(row.player2_id)
        problem = await ProblemRepository(db).get_by_id(row.problem_id)
        if not player1 or not player2 or not problem:
            raise NotFoundError(f"Incomplete match record: {row.id}")

        return MatchDetails(
            id=row.id,
            player1=player1,
            player2=player2,
            problem=problem,
            status=MatchStatusEnum(row.status),
            winner_id=row.winner_id,
            started_at=row.started_at,
            ended_at=row.ended_at,
        )

    # ===== 만료 스윕 =====

    async def expire_overdue_matches(self, now: Optional[datetime] = None) -> int:
        """
        종료 시각이 지난 진행 중 매치를 TIMEOUT으로 종료

        타이머 키가 사라졌으면 DB의 시작 시각으로 종료 시각을 다시 계산합니다.
        이미 종료된 매치가 인덱스에 남아 있으면 정리만 합니다.

        Returns:
            이번 스윕에서 종료한 매치 수
        """
        now = now or utcnow()
        expired = 0

        for match_id in await self.state.get_active_matches():
            end_time = await self.state.get_end_time(match_id)

            if end_time is None:
                end_time = await self._recover_end_time(match_id)
                if end_time is None:
                    continue

            if end_time > now:
                continue

            try:
                outcome = await self.conclude_match(match_id, None, EndReasonEnum.TIMEOUT)
            except NotFoundError:
                logger.warning(f"[Expiry] DB에 없는 매치를 인덱스에서 제거 - match_id: {match_id}")
                await self.state.remove_active_match(match_id)
                continue

            if outcome:
                expired += 1
                logger.info(f"[Expiry] 시간 초과 종료 - match_id: {match_id}")
            else:
                await self._cleanup_stale(match_id)

        return expired

    async def _recover_end_time(self, match_id: str) -> Optional[datetime]:
        """
        타이머가 없는 매치의 종료 시각 복원

        Returns:
            종료 시각, 진행 중이 아닌 매치면 정리 후 None
        """
        async with self.session_factory() as db:
            row = await MatchRepository(db).get_by_id(match_id)

        if not row:
            await self.state.remove_active_match(match_id)
            return None
        if row.status != MatchStatusEnum.IN_PROGRESS:
            await self.state.cleanup_match(match_id, row.player1_id, row.player2_id)
            return None

        started_at = row.started_at
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        end_time = started_at + timedelta(minutes=settings.MATCH_DURATION_MINUTES)
        await self.state.set_end_time(match_id, end_time)
        return end_time

    async def _cleanup_stale(self, match_id: str) -> None:
        players = await self.state.get_match_players(match_id)
        if players:
            await self.state.cleanup_match(match_id, *players)
        else:
            await self.state.remove_active_match(match_id)
