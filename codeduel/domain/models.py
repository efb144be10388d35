"""
도메인 모델

DB 행과 클라이언트 페이로드 사이의 중간 표현입니다.
to_dict()는 클라이언트 프로토콜 형식(camelCase)을 따릅니다.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from codeduel.infrastructure.persistence.models.enums import (
    DifficultyEnum,
    EndReasonEnum,
    MatchStatusEnum,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


@dataclass
class Player:
    """레이팅 대상 플레이어"""

    id: str
    username: str
    rating: int
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "avatarUrl": self.avatar_url,
            "eloRating": self.rating,
        }


@dataclass
class TestCase:
    """테스트 케이스"""

    __test__ = False

    input: str
    expected_output: str
    is_hidden: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCase":
        return cls(
            input=data.get("input", ""),
            expected_output=data.get("expectedOutput", data.get("expected_output", "")),
            is_hidden=bool(data.get("isHidden", data.get("is_hidden", False))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": self.input,
            "expectedOutput": self.expected_output,
            "isHidden": self.is_hidden,
        }


@dataclass
class Problem:
    """문제 (매치 진행 중 불변)"""

    id: str
    title: str
    description: str
    difficulty: DifficultyEnum
    test_cases: List[TestCase] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def visible_test_cases(self) -> List[TestCase]:
        return [tc for tc in self.test_cases if not tc.is_hidden]

    def to_dict(self, include_hidden: bool = False) -> Dict[str, Any]:
        cases = self.test_cases if include_hidden else self.visible_test_cases
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty.value,
            "testCases": [tc.to_dict() for tc in cases],
            "createdAt": _iso(self.created_at),
        }

    def to_summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "difficulty": self.difficulty.value,
        }


@dataclass
class MatchDetails:
    """플레이어/문제 객체가 채워진 매치"""

    id: str
    player1: Player
    player2: Player
    problem: Problem
    status: MatchStatusEnum
    winner_id: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def player_ids(self) -> List[str]:
        return [self.player1.id, self.player2.id]

    def has_player(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def opponent_of(self, player_id: str) -> str:
        """상대 플레이어 ID"""
        if player_id == self.player1.id:
            return self.player2.id
        if player_id == self.player2.id:
            return self.player1.id
        raise ValueError(f"{player_id} is not a player of match {self.id}")

    @property
    def is_in_progress(self) -> bool:
        return self.status == MatchStatusEnum.IN_PROGRESS

    def to_dict(self, include_hidden: bool = False) -> Dict[str, Any]:
        # 매치 종료 전에는 숨김 테스트 케이스를 내보내지 않음
        return {
            "id": self.id,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict(),
            "problem": self.problem.to_dict(include_hidden=include_hidden),
            "winnerId": self.winner_id,
            "status": self.status.value,
            "startedAt": _iso(self.started_at),
            "endedAt": _iso(self.ended_at),
        }


@dataclass
class MatchOutcome:
    """매치 종료 결과"""

    match_id: str
    player_ids: List[str]
    reason: EndReasonEnum
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    winner_new_rating: Optional[int] = None
    loser_new_rating: Optional[int] = None

    def to_event(self) -> Dict[str, Any]:
        return {"winnerId": self.winner_id, "reason": self.reason.value}


@dataclass
class QueueEntry:
    """로비 대기열 항목"""

    player_id: str
    rating: int
    joined_at: float

    def wait_seconds(self, now: float) -> float:
        return max(0.0, now - self.joined_at)


@dataclass
class ChatMessage:
    """채팅 메시지"""

    user_id: str
    username: str
    content: str
    type: str = "user"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "content": self.content,
            "timestamp": self.timestamp,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            id=data["id"],
            user_id=data["userId"],
            username=data.get("username", ""),
            content=data.get("content", ""),
            timestamp=data.get("timestamp", ""),
            type=data.get("type", "user"),
        )


@dataclass
class ActiveMatchSummary:
    """관전 목록용 진행 중 매치 요약"""

    id: str
    player1: Player
    player2: Player
    problem_title: str
    started_at: Optional[datetime]
    spectator_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict(),
            "problemTitle": self.problem_title,
            "startedAt": _iso(self.started_at),
            "spectatorCount": self.spectator_count,
        }
