"""
사용자 테이블 모델
레이팅 외 필드는 인증 서비스가 관리하며 여기서는 읽기만 합니다.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from codeduel.infrastructure.persistence.session import Base


class User(Base):
    """사용자 테이블"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    elo_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        CheckConstraint("elo_rating >= 0", name="users_elo_rating_non_negative"),
    )
