"""
DB Enum 정의
"""
import enum


class DifficultyEnum(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class MatchStatusEnum(str, enum.Enum):
    # PENDING은 저장하지 않음 - 생성 시 바로 IN_PROGRESS
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EndReasonEnum(str, enum.Enum):
    SOLVED = "SOLVED"
    FORFEIT = "FORFEIT"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
