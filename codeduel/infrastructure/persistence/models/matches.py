"""
매치 테이블 모델
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from codeduel.infrastructure.persistence.models.enums import MatchStatusEnum
from codeduel.infrastructure.persistence.session import Base


class Match(Base):
    """매치 테이블"""
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    player1_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False
    )
    player2_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False
    )
    problem_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("problems.id"),
        nullable=False
    )
    winner_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True
    )
    status: Mapped[MatchStatusEnum] = mapped_column(
        Enum(MatchStatusEnum, name="match_status_enum"),
        nullable=False,
        default=MatchStatusEnum.IN_PROGRESS
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("matches_player1_status_idx", "player1_id", "status"),
        Index("matches_player2_status_idx", "player2_id", "status"),
    )
