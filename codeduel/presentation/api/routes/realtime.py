"""
실시간 WebSocket 엔드포인트

[메시지 형식]
수신: {"type": "submit_code", "data": {"matchId": ..., "code": ..., "language": ...}}
송신: {"type": "submission_result", "data": {...}}
      {"type": "error", "data": "에러 메시지"}

접속 시 ?token= 쿼리로 인증하며, 실패하면 1008 코드로 연결을 닫습니다.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from codeduel.core.exceptions import AuthError
from codeduel.presentation.realtime.connection import Connection
from codeduel.presentation.realtime.hub import SessionHub

router = APIRouter(tags=["Realtime"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """플레이어 실시간 연결"""
    hub: SessionHub = websocket.app.state.hub
    verifier = websocket.app.state.identity_verifier

    try:
        player_id = await verifier.verify_token(token)
    except AuthError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return

    player = await hub.match_service.get_player(player_id)
    if not player:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="User not found")
        return

    await websocket.accept()
    connection = Connection(player, websocket)

    try:
        await hub.connect(connection)
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await connection.send("error", "Invalid message format")
                continue
            if not isinstance(message, dict):
                await connection.send("error", "Invalid message format")
                continue

            await hub.dispatch(connection, message.get("type"), message.get("data"))
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"[Realtime] 연결 오류 - {connection!r}: {str(e)}", exc_info=True)
    finally:
        await hub.disconnect(connection)
