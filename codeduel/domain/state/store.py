"""
매치 임시 상태 저장소

연결 라우팅, 매치 타이머, 코드 스냅샷, 플레이어↔매치 매핑, 채팅 기록,
관전자, 진행 중 매치 인덱스를 관리합니다.

[키 구조]
- user:{player_id}:socket        연결 ID
- match:{match_id}:endtime       종료 시각 (ISO 8601, TTL = 매치 시간 + 여유)
- match:{match_id}:code          {player_id: code}
- match:{match_id}:players       {player1, player2}
- player:{player_id}:match       매치 ID
- match:{match_id}:spectators    관전자 ID 집합
- matches:active                 진행 중 매치 ID 집합
- chat:lobby, chat:match:{id}    최근 채팅 (최대 N개)
- job:{job_id}:delivered         실행 결과 전달 표시

[정리 규칙]
매치가 끝나면 채팅을 제외한 관련 키를 한 번에 삭제합니다.
매치 채팅은 종료 후 리뷰를 위해 TTL 동안만 남깁니다.
"""
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from codeduel.core.config import settings
from codeduel.domain.models import ChatMessage
from codeduel.domain.state.adapters.base import StateBackend

logger = logging.getLogger(__name__)

ACTIVE_MATCHES_KEY = "matches:active"
LOBBY_CHAT_KEY = "chat:lobby"


class StateStore:
    """매치 임시 상태 데이터 접근 계층"""

    def __init__(self, backend: StateBackend):
        self.backend = backend

    # ===== 키 생성 =====

    @staticmethod
    def _socket_key(player_id: str) -> str:
        return f"user:{player_id}:socket"

    @staticmethod
    def _endtime_key(match_id: str) -> str:
        return f"match:{match_id}:endtime"

    @staticmethod
    def _code_key(match_id: str) -> str:
        return f"match:{match_id}:code"

    @staticmethod
    def _players_key(match_id: str) -> str:
        return f"match:{match_id}:players"

    @staticmethod
    def _player_match_key(player_id: str) -> str:
        return f"player:{player_id}:match"

    @staticmethod
    def _spectators_key(match_id: str) -> str:
        return f"match:{match_id}:spectators"

    @staticmethod
    def _match_chat_key(match_id: str) -> str:
        return f"chat:match:{match_id}"

    @staticmethod
    def _delivered_key(job_id: str) -> str:
        return f"job:{job_id}:delivered"

    # ===== 연결 라우팅 =====

    async def set_connection(self, player_id: str, connection_id: str) -> None:
        await self.backend.set(self._socket_key(player_id), connection_id)

    async def get_connection(self, player_id: str) -> Optional[str]:
        return await self.backend.get(self._socket_key(player_id))

    async def remove_connection(self, player_id: str, connection_id: str) -> bool:
        """재접속으로 덮어쓴 라우팅은 지우지 않음"""
        return await self.backend.delete_if_value(self._socket_key(player_id), connection_id)

    # ===== 매치 타이머 =====

    @staticmethod
    def create_end_time(duration_minutes: Optional[int] = None) -> datetime:
        minutes = duration_minutes or settings.MATCH_DURATION_MINUTES
        return datetime.now(timezone.utc) + timedelta(minutes=minutes)

    async def set_end_time(self, match_id: str, end_time: datetime) -> None:
        ttl = (settings.MATCH_DURATION_MINUTES + settings.MATCH_TIMER_GRACE_MINUTES) * 60
        await self.backend.set(self._endtime_key(match_id), end_time.isoformat(), ttl)

    async def get_end_time(self, match_id: str) -> Optional[datetime]:
        value = await self.backend.get(self._endtime_key(match_id))
        if not value:
            return None
        end_time = datetime.fromisoformat(value)
        if end_time.tzinfo is None:
            end_time = end_time.replace(tzinfo=timezone.utc)
        return end_time

    # ===== 플레이어 코드 스냅샷 =====

    async def set_player_code(self, match_id: str, player_id: str, code: str) -> None:
        await self.backend.hset(self._code_key(match_id), {player_id: code})

    async def get_player_code(self, match_id: str, player_id: str) -> Optional[str]:
        return await self.backend.hget(self._code_key(match_id), player_id)

    async def get_all_code(self, match_id: str) -> Dict[str, str]:
        return await self.backend.hgetall(self._code_key(match_id))

    # ===== 매치 플레이어 매핑 =====

    async def set_match_players(self, match_id: str, player1_id: str, player2_id: str) -> None:
        await self.backend.hset(
            self._players_key(match_id),
            {"player1": player1_id, "player2": player2_id},
        )
        # 플레이어로 매치를 빠르게 찾기 위한 역방향 매핑
        await self.backend.set(self._player_match_key(player1_id), match_id)
        await self.backend.set(self._player_match_key(player2_id), match_id)

    async def get_match_players(self, match_id: str) -> Optional[Tuple[str, str]]:
        players = await self.backend.hgetall(self._players_key(match_id))
        if not players.get("player1") or not players.get("player2"):
            return None
        return players["player1"], players["player2"]

    async def get_match_by_player(self, player_id: str) -> Optional[str]:
        return await self.backend.get(self._player_match_key(player_id))

    # ===== 관전자 =====

    async def add_spectator(self, match_id: str, player_id: str) -> int:
        await self.backend.sadd(self._spectators_key(match_id), player_id)
        return await self.get_spectator_count(match_id)

    async def remove_spectator(self, match_id: str, player_id: str) -> int:
        await self.backend.srem(self._spectators_key(match_id), player_id)
        return await self.get_spectator_count(match_id)

    async def get_spectator_count(self, match_id: str) -> int:
        return await self.backend.scard(self._spectators_key(match_id))

    # ===== 진행 중 매치 인덱스 =====

    async def add_active_match(self, match_id: str) -> None:
        await self.backend.sadd(ACTIVE_MATCHES_KEY, match_id)

    async def remove_active_match(self, match_id: str) -> None:
        await self.backend.srem(ACTIVE_MATCHES_KEY, match_id)

    async def get_active_matches(self) -> List[str]:
        return await self.backend.smembers(ACTIVE_MATCHES_KEY)

    # ===== 채팅 기록 =====

    async def add_lobby_message(self, message: ChatMessage) -> None:
        await self.backend.lpush_trim(
            LOBBY_CHAT_KEY,
            json.dumps(message.to_dict(), ensure_ascii=False),
            settings.MAX_CHAT_MESSAGES,
        )

    async def get_lobby_messages(self, limit: Optional[int] = None) -> List[ChatMessage]:
        return await self._read_chat(LOBBY_CHAT_KEY, limit)

    async def add_match_message(self, match_id: str, message: ChatMessage) -> None:
        await self.backend.lpush_trim(
            self._match_chat_key(match_id),
            json.dumps(message.to_dict(), ensure_ascii=False),
            settings.MAX_CHAT_MESSAGES,
            ttl_seconds=settings.MATCH_CHAT_TTL_SECONDS,
        )

    async def get_match_messages(
        self, match_id: str, limit: Optional[int] = None
    ) -> List[ChatMessage]:
        return await self._read_chat(self._match_chat_key(match_id), limit)

    async def _read_chat(self, key: str, limit: Optional[int]) -> List[ChatMessage]:
        count = limit or settings.MAX_CHAT_MESSAGES
        rows = await self.backend.lrange(key, 0, count - 1)
        # 최신순으로 저장되어 있으므로 뒤집어서 오래된 순으로 반환
        return [ChatMessage.from_dict(json.loads(row)) for row in reversed(rows)]

    # ===== 실행 결과 전달 =====

    async def mark_job_delivered(self, job_id: str) -> bool:
        """
        실행 결과 전달 표시

        Returns:
            처음 표시했으면 True, 이미 전달된 작업이면 False
        """
        return await self.backend.set_if_absent(
            self._delivered_key(job_id),
            "1",
            settings.EXECUTION_RESULT_TTL_SECONDS,
        )

    # ===== 매치 정리 =====

    async def register_match(
        self, match_id: str, player1_id: str, player2_id: str, end_time: datetime
    ) -> None:
        """새 매치의 타이머, 플레이어 매핑, 진행 중 인덱스 등록"""
        await self.set_end_time(match_id, end_time)
        await self.set_match_players(match_id, player1_id, player2_id)
        await self.add_active_match(match_id)

    async def cleanup_match(self, match_id: str, player1_id: str, player2_id: str) -> None:
        """
        종료된 매치의 관련 키 삭제

        채팅 기록만 TTL을 걸어 남겨둡니다.
        """
        await self.backend.delete(
            self._code_key(match_id),
            self._endtime_key(match_id),
            self._players_key(match_id),
            self._spectators_key(match_id),
        )
        # 이미 다음 매치로 넘어간 플레이어의 매핑은 건드리지 않음
        await self.backend.delete_if_value(self._player_match_key(player1_id), match_id)
        await self.backend.delete_if_value(self._player_match_key(player2_id), match_id)
        await self.remove_active_match(match_id)
        await self.backend.expire(self._match_chat_key(match_id), settings.MATCH_CHAT_TTL_SECONDS)
        logger.info(f"[StateStore] 매치 상태 정리 완료 - match_id: {match_id}")
