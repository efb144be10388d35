"""
문제 테이블 모델
"""
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from codeduel.infrastructure.persistence.models.enums import DifficultyEnum
from codeduel.infrastructure.persistence.session import Base


class Problem(Base):
    """문제 테이블"""
    __tablename__ = "problems"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    difficulty: Mapped[DifficultyEnum] = mapped_column(
        Enum(DifficultyEnum, name="difficulty_enum"),
        nullable=False
    )
    # [{"input": "...", "expectedOutput": "...", "isHidden": false}, ...]
    test_cases: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
