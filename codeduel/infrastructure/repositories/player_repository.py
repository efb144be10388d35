"""
플레이어 Repository
users 테이블에서 레이팅을 읽고 씁니다.
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from codeduel.domain.models import Player
from codeduel.infrastructure.persistence.models.users import User


def to_player(row: User) -> Player:
    return Player(
        id=row.id,
        username=row.username,
        rating=row.elo_rating,
        avatar_url=row.avatar_url,
    )


class PlayerRepository:
    """플레이어 데이터 접근 계층"""

    def __init__(self, db: AsyncSession):
        """
        Args:
            db: SQLAlchemy 비동기 세션
        """
        self.db = db

    async def get_by_id(self, player_id: str) -> Optional[Player]:
        """ID로 조회"""
        result = await self.db.execute(select(User).where(User.id == player_id))
        row = result.scalar_one_or_none()
        return to_player(row) if row else None

    async def update_rating(self, player_id: str, rating: int) -> None:
        """레이팅 갱신 (commit은 호출자가 담당)"""
        await self.db.execute(
            update(User).where(User.id == player_id).values(elo_rating=max(0, rating))
        )
