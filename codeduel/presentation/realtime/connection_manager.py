"""
연결/룸 관리

[룸 구조]
- lobby                         접속한 모든 연결
- match:{match_id}              두 플레이어 + 관전자
- match:{match_id}:spectators   관전자만 (코드 중계용)
"""
import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from codeduel.presentation.realtime.connection import Connection

logger = logging.getLogger(__name__)

LOBBY_ROOM = "lobby"


def match_room(match_id: str) -> str:
    return f"match:{match_id}"


def spectator_room(match_id: str) -> str:
    return f"match:{match_id}:spectators"


class ConnectionManager:
    """프로세스 로컬 연결 레지스트리"""

    def __init__(self):
        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[str, Set[str]] = defaultdict(set)

    def register(self, connection: Connection) -> None:
        self.connections[connection.id] = connection
        self.join_room(connection, LOBBY_ROOM)

    def unregister(self, connection: Connection) -> None:
        for room in list(connection.rooms):
            self.leave_room(connection, room)
        self.connections.pop(connection.id, None)

    def get(self, connection_id: Optional[str]) -> Optional[Connection]:
        if not connection_id:
            return None
        return self.connections.get(connection_id)

    def join_room(self, connection: Connection, room: str) -> None:
        self.rooms[room].add(connection.id)
        connection.rooms.add(room)

    def leave_room(self, connection: Connection, room: str) -> None:
        members = self.rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self.rooms[room]
        connection.rooms.discard(room)

    def close_room(self, room: str) -> None:
        """룸의 모든 멤버 제거"""
        for connection_id in list(self.rooms.get(room, ())):
            connection = self.connections.get(connection_id)
            if connection:
                connection.rooms.discard(room)
        self.rooms.pop(room, None)

    def room_members(self, room: str) -> List[Connection]:
        return [
            self.connections[cid]
            for cid in sorted(self.rooms.get(room, ()))
            if cid in self.connections
        ]

    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: Any = None,
        exclude: Optional[str] = None,
    ) -> int:
        """
        룸 전체에 전송

        끊어진 연결로의 전송 실패는 로그만 남기고 나머지 멤버에게 계속 전송합니다.

        Returns:
            전송에 성공한 연결 수
        """
        sent = 0
        for connection in self.room_members(room):
            if connection.id == exclude:
                continue
            try:
                await connection.send(event, data)
                sent += 1
            except Exception as e:
                logger.warning(f"[ConnectionManager] 전송 실패 - {connection!r}, event: {event}: {str(e)}")
        return sent

    async def emit_to_connection(self, connection_id: Optional[str], event: str, data: Any = None) -> bool:
        connection = self.get(connection_id)
        if not connection:
            return False
        try:
            await connection.send(event, data)
            return True
        except Exception as e:
            logger.warning(f"[ConnectionManager] 전송 실패 - {connection!r}, event: {event}: {str(e)}")
            return False
