# DB 모델 모듈
# users, problems, matches 테이블 스키마 정의

from codeduel.infrastructure.persistence.models.enums import (
    DifficultyEnum,
    EndReasonEnum,
    MatchStatusEnum,
)
from codeduel.infrastructure.persistence.models.matches import Match
from codeduel.infrastructure.persistence.models.problems import Problem
from codeduel.infrastructure.persistence.models.users import User

__all__ = [
    # Enums
    "DifficultyEnum",
    "EndReasonEnum",
    "MatchStatusEnum",
    # Models
    "Match",
    "Problem",
    "User",
]
