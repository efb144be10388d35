"""
실시간 연결

메시지 형식: {"type": 이벤트 이름, "data": 페이로드}
"""
import uuid
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from codeduel.domain.models import Player


class Connection:
    """인증된 플레이어 연결 하나"""

    def __init__(
        self,
        player: Player,
        websocket: Optional[WebSocket] = None,
        connection_id: Optional[str] = None,
    ):
        self.id = connection_id or str(uuid.uuid4())
        self.player = player
        self.websocket = websocket
        self.rooms: Set[str] = set()

    @property
    def player_id(self) -> str:
        return self.player.id

    async def send(self, event: str, data: Any = None) -> None:
        await self._transmit({"type": event, "data": data})

    async def _transmit(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_json(message)

    def __repr__(self) -> str:
        return f"Connection(id={self.id}, player={self.player.id})"
