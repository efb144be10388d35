"""
실시간 세션 허브

연결별 이벤트를 매치메이킹, 매치 라이프사이클, 실행 파이프라인에 연결합니다.

[흐름]
1. 접속: 연결 라우팅 등록 → 로비 채팅 기록 전송 → 진행 중 매치가 있으면 자동 재입장
2. 이벤트: 핸들러 테이블로 분기, 도메인 예외는 해당 연결에만 error 이벤트로 전달
3. 구독: 매치 생성 → match_found, 매치 종료 → match_ended 방송,
   실행 결과 → run_result / submission_result (작업당 한 번)
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError

from codeduel.application.services.execution_service import ExecutionPipeline
from codeduel.application.services.match_service import MatchService
from codeduel.application.services.matchmaking_service import MatchmakingService
from codeduel.core.config import settings
from codeduel.core.exceptions import (
    ConflictError,
    DuelError,
    InfraError,
    NotFoundError,
    ValidationError,
)
from codeduel.domain.models import ChatMessage, MatchDetails, MatchOutcome
from codeduel.domain.queue import ExecutionJob, ExecutionMode, ExecutionResult, make_job_id
from codeduel.domain.state import StateStore
from codeduel.infrastructure.persistence.models.enums import EndReasonEnum
from codeduel.presentation.realtime.connection import Connection
from codeduel.presentation.realtime.connection_manager import (
    LOBBY_ROOM,
    ConnectionManager,
    match_room,
    spectator_room,
)
from codeduel.presentation.schemas.events import (
    CodeSubmissionPayload,
    CodeUpdatePayload,
    MatchMessagePayload,
)

logger = logging.getLogger(__name__)

EventHandler = Callable[[Connection, Any], Awaitable[None]]


def _match_id_from(data: Any) -> str:
    """join_match(matchId) 처럼 문자열 또는 {"matchId": ...} 형태 모두 허용"""
    if isinstance(data, dict):
        data = data.get("matchId")
    if not isinstance(data, str) or not data:
        raise ValidationError("matchId is required")
    return data


def _parse(model: type, data: Any) -> BaseModel:
    if not isinstance(data, dict):
        raise ValidationError("Invalid payload")
    try:
        return model(**data)
    except PayloadValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ValidationError(f"Missing or invalid fields: {fields}") from e


def _chat_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content is required")
    if len(content) > settings.MAX_CHAT_LENGTH:
        raise ValidationError(f"Message too long (max {settings.MAX_CHAT_LENGTH} characters)")
    return content.strip()


class SessionHub:
    """실시간 이벤트 허브"""

    def __init__(
        self,
        manager: ConnectionManager,
        state_store: StateStore,
        match_service: MatchService,
        matchmaking_service: MatchmakingService,
        pipeline: ExecutionPipeline,
    ):
        self.manager = manager
        self.state = state_store
        self.match_service = match_service
        self.matchmaking = matchmaking_service
        self.pipeline = pipeline
        self._unsubscribers = []

        self._handlers: Dict[str, EventHandler] = {
            "join_lobby": self.handle_join_lobby,
            "leave_lobby": self.handle_leave_lobby,
            "join_match": self.handle_join_match,
            "submit_code": self.handle_submit_code,
            "run_code": self.handle_run_code,
            "code_update": self.handle_code_update,
            "forfeit_match": self.handle_forfeit_match,
            "send_lobby_message": self.handle_send_lobby_message,
            "send_match_message": self.handle_send_match_message,
            "join_spectator": self.handle_join_spectator,
            "leave_spectator": self.handle_leave_spectator,
            "get_active_matches": self.handle_get_active_matches,
        }

    # ===== 구독 =====

    def subscribe(self) -> None:
        """파이프라인/라이프사이클 채널 구독"""
        self._unsubscribers = [
            self.match_service.match_created.subscribe(self.on_match_created),
            self.match_service.match_ended.subscribe(self.on_match_ended),
            self.pipeline.results.subscribe(self.on_execution_result),
        ]

    def unsubscribe(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ===== 연결 =====

    async def connect(self, connection: Connection) -> None:
        """
        접속 처리

        진행 중 매치가 있으면 매치 룸에 다시 넣고 match_started를 보냅니다 (재접속 경로).
        """
        player = connection.player
        self.manager.register(connection)
        await self.state.set_connection(player.id, connection.id)
        logger.info(f"[Hub] 접속 - {player.username} ({connection.id})")

        history = await self.state.get_lobby_messages()
        await connection.send("chat_history", [m.to_dict() for m in history])

        active = await self.match_service.get_user_active_match(player.id)
        if active:
            self.manager.join_room(connection, match_room(active.id))
            await connection.send("match_started", active.to_dict())
            logger.info(f"[Hub] 진행 중 매치 재입장 - {player.username}, match_id: {active.id}")

    async def disconnect(self, connection: Connection) -> None:
        """
        연결 종료 처리

        연결이 끊겨도 기권으로 처리하지 않습니다. 재접속하면 매치에 다시 들어갑니다.
        """
        player = connection.player
        try:
            # 재접속으로 라우팅이 이미 새 연결을 가리키면 대기열도 유지
            if await self.state.remove_connection(player.id, connection.id):
                await self.matchmaking.leave(player.id)

            for room in list(connection.rooms):
                if room.endswith(":spectators"):
                    match_id = room[len("match:"):-len(":spectators")]
                    await self._leave_spectator(connection, match_id)
        finally:
            self.manager.unregister(connection)
            logger.info(f"[Hub] 연결 종료 - {player.username} ({connection.id})")

    async def dispatch(self, connection: Connection, event: Optional[str], data: Any = None) -> None:
        """이벤트 처리 (도메인 예외는 error 이벤트로 변환)"""
        handler = self._handlers.get(event or "")
        if not handler:
            await connection.send("error", f"Unknown event: {event}")
            return

        try:
            await handler(connection, data)
        except InfraError as e:
            logger.error(f"[Hub] 저장소 오류 - event: {event}: {str(e)}")
            await connection.send("error", "Service temporarily unavailable")
        except DuelError as e:
            logger.debug(f"[Hub] 요청 거부 - event: {event}, {type(e).__name__}: {str(e)}")
            await connection.send("error", str(e))
        except Exception as e:
            logger.error(f"[Hub] 이벤트 처리 오류 - event: {event}: {str(e)}", exc_info=True)
            await connection.send("error", "Internal server error")

    # ===== 로비 =====

    async def handle_join_lobby(self, connection: Connection, data: Any = None) -> None:
        entry, position, estimated_wait = await self.matchmaking.join(connection.player_id)
        await connection.send("lobby_joined", {
            "position": position,
            "estimatedWait": estimated_wait,
        })
        await self.matchmaking.pair_player(entry)

    async def handle_leave_lobby(self, connection: Connection, data: Any = None) -> None:
        await self.matchmaking.leave(connection.player_id)
        await connection.send("lobby_left")

    # ===== 매치 =====

    async def handle_join_match(self, connection: Connection, data: Any) -> None:
        match = await self._load_player_match(connection, _match_id_from(data))
        self.manager.join_room(connection, match_room(match.id))
        await connection.send("match_started", match.to_dict())

        history = await self.state.get_match_messages(match.id)
        await connection.send("chat_history", [m.to_dict() for m in history])

    async def handle_submit_code(self, connection: Connection, data: Any) -> None:
        await self._dispatch_execution(connection, data, ExecutionMode.SUBMIT)

    async def handle_run_code(self, connection: Connection, data: Any) -> None:
        await self._dispatch_execution(connection, data, ExecutionMode.RUN)

    async def _dispatch_execution(self, connection: Connection, data: Any, mode: ExecutionMode) -> str:
        """
        실행 작업 등록

        RUN은 공개 테스트만, SUBMIT은 숨김 테스트까지 전체를 사용합니다.
        """
        payload = _parse(CodeSubmissionPayload, data)
        match = await self._load_player_match(connection, payload.matchId)

        if mode is ExecutionMode.RUN:
            test_cases = match.problem.visible_test_cases
        else:
            test_cases = match.problem.test_cases

        job = ExecutionJob(
            job_id=make_job_id(match.id, connection.player_id),
            match_id=match.id,
            player_id=connection.player_id,
            code=payload.code,
            language=payload.language,
            problem_id=match.problem.id,
            test_cases=list(test_cases),
            mode=mode,
        )
        await self.state.set_player_code(match.id, connection.player_id, payload.code)
        return await self.pipeline.submit(job)

    async def handle_code_update(self, connection: Connection, data: Any) -> None:
        payload = _parse(CodeUpdatePayload, data)
        players = await self.state.get_match_players(payload.matchId)
        if not players:
            raise ConflictError("Match is not in progress")
        if connection.player_id not in players:
            raise ValidationError("You are not a player in this match")

        await self.state.set_player_code(payload.matchId, connection.player_id, payload.code)

        opponent_id = players[1] if players[0] == connection.player_id else players[0]
        opponent_connection_id = await self.state.get_connection(opponent_id)
        await self.manager.emit_to_connection(
            opponent_connection_id, "opponent_code_update", {"code": payload.code}
        )
        await self.manager.emit_to_room(
            spectator_room(payload.matchId),
            "player_code_update",
            {"playerId": connection.player_id, "code": payload.code},
        )

    async def handle_forfeit_match(self, connection: Connection, data: Any) -> None:
        match = await self._load_player_match(connection, _match_id_from(data))
        winner_id = match.opponent_of(connection.player_id)
        await self.match_service.conclude_match(match.id, winner_id, EndReasonEnum.FORFEIT)

    async def _load_player_match(self, connection: Connection, match_id: str) -> MatchDetails:
        match = await self.match_service.get_match_by_id(match_id)
        if not match:
            raise NotFoundError("Match not found")
        if not match.has_player(connection.player_id):
            raise ValidationError("You are not a player in this match")
        if not match.is_in_progress:
            raise ConflictError("Match is not in progress")
        return match

    # ===== 채팅 =====

    async def handle_send_lobby_message(self, connection: Connection, data: Any) -> None:
        if isinstance(data, dict):
            data = data.get("content")
        message = ChatMessage(
            user_id=connection.player_id,
            username=connection.player.username,
            content=_chat_content(data),
        )
        await self.state.add_lobby_message(message)
        await self.manager.emit_to_room(LOBBY_ROOM, "lobby_message", message.to_dict())

    async def handle_send_match_message(self, connection: Connection, data: Any) -> None:
        payload = _parse(MatchMessagePayload, data)
        room = match_room(payload.matchId)
        if room not in connection.rooms:
            raise ValidationError("Join the match before chatting")

        message = ChatMessage(
            user_id=connection.player_id,
            username=connection.player.username,
            content=_chat_content(payload.content),
        )
        await self.state.add_match_message(payload.matchId, message)
        await self.manager.emit_to_room(room, "match_message", message.to_dict())

    # ===== 관전 =====

    async def handle_join_spectator(self, connection: Connection, data: Any) -> None:
        match_id = _match_id_from(data)
        match = await self.match_service.get_match_by_id(match_id)
        if not match:
            raise NotFoundError("Match not found")
        if match.has_player(connection.player_id):
            raise ConflictError("Cannot spectate your own match")
        if not match.is_in_progress:
            raise ConflictError("Match is not in progress")

        self.manager.join_room(connection, match_room(match_id))
        self.manager.join_room(connection, spectator_room(match_id))
        count = await self.state.add_spectator(match_id, connection.player_id)

        code = await self.state.get_all_code(match_id)
        await connection.send("spectator_state", {
            "match": match.to_dict(),
            "player1Code": code.get(match.player1.id, ""),
            "player2Code": code.get(match.player2.id, ""),
        })
        history = await self.state.get_match_messages(match_id)
        await connection.send("chat_history", [m.to_dict() for m in history])

        await self.manager.emit_to_room(match_room(match_id), "spectator_joined", {
            "matchId": match_id,
            "spectatorCount": count,
        })
        logger.info(f"[Hub] 관전 시작 - {connection.player.username}, match_id: {match_id}")

    async def handle_leave_spectator(self, connection: Connection, data: Any) -> None:
        await self._leave_spectator(connection, _match_id_from(data))

    async def _leave_spectator(self, connection: Connection, match_id: str) -> None:
        room = spectator_room(match_id)
        self.manager.leave_room(connection, room)
        self.manager.leave_room(connection, match_room(match_id))

        # 같은 플레이어가 다른 연결로 계속 관전 중이면 관전자 집합 유지
        if any(member.player_id == connection.player_id for member in self.manager.room_members(room)):
            count = await self.state.get_spectator_count(match_id)
        else:
            count = await self.state.remove_spectator(match_id, connection.player_id)
        await self.manager.emit_to_room(match_room(match_id), "spectator_joined", {
            "matchId": match_id,
            "spectatorCount": count,
        })

    async def handle_get_active_matches(self, connection: Connection, data: Any = None) -> None:
        summaries = await self.match_service.get_active_match_summaries()
        await connection.send("active_matches", [s.to_dict() for s in summaries])

    # ===== 채널 구독자 =====

    async def on_match_created(self, match: MatchDetails) -> None:
        """두 플레이어를 매치 룸에 넣고 match_found 전송"""
        for player_id in match.player_ids:
            connection = self.manager.get(await self.state.get_connection(player_id))
            if not connection:
                continue
            self.manager.join_room(connection, match_room(match.id))
            await self.manager.emit_to_connection(connection.id, "match_found", match.to_dict())

    async def on_match_ended(self, outcome: MatchOutcome) -> None:
        """관전자를 포함한 매치 룸 전체에 결과 방송"""
        await self.manager.emit_to_room(match_room(outcome.match_id), "match_ended", outcome.to_event())
        self.manager.close_room(spectator_room(outcome.match_id))
        self.manager.close_room(match_room(outcome.match_id))

    async def on_execution_result(self, result: ExecutionResult) -> None:
        """
        실행 결과 전달

        같은 작업 결과는 한 번만 처리합니다. 모든 테스트를 통과한 제출만 매치를 끝내고,
        이미 끝난 매치의 늦은 결과는 전달만 합니다.
        """
        if not await self.state.mark_job_delivered(result.job_id):
            logger.debug(f"[Hub] 이미 전달된 결과 - job_id: {result.job_id}")
            return

        event = "run_result" if result.is_run else "submission_result"
        connection_id = await self.state.get_connection(result.player_id)
        await self.manager.emit_to_connection(connection_id, event, result.to_dict())

        if not result.solved:
            return

        try:
            await self.match_service.conclude_match(
                result.match_id, result.player_id, EndReasonEnum.SOLVED
            )
        except NotFoundError:
            logger.warning(f"[Hub] 결과의 매치를 찾을 수 없음 - match_id: {result.match_id}")
