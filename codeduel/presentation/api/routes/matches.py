"""
매치 API 라우터

[주요 엔드포인트]
1. GET  /api/matches/user/history   - 완료된 매치 기록 (최신순)
2. GET  /api/matches/user/active    - 진행 중 매치
3. GET  /api/matches/{match_id}     - 매치 상세 (숨김 테스트 제외)
4. POST /api/matches/{match_id}/cancel - 관리자 취소 (X-API-Key)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from codeduel.application.services.match_service import MatchService
from codeduel.core.exceptions import ConflictError, NotFoundError
from codeduel.core.security import verify_admin_api_key
from codeduel.presentation.api.dependencies import get_current_player_id, get_match_service
from codeduel.presentation.schemas.common import ErrorResponse

router = APIRouter(prefix="/api/matches", tags=["Matches"])
logger = logging.getLogger(__name__)


def _error(status_code: int, error_code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": True,
            "error_code": error_code,
            "error_message": message,
        },
    )


@router.get(
    "/user/history",
    responses={401: {"model": ErrorResponse, "description": "인증 실패"}},
    summary="매치 기록 조회",
)
async def get_match_history(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    player_id: str = Depends(get_current_player_id),
    match_service: MatchService = Depends(get_match_service),
):
    """완료된 매치 기록 (문제는 요약만)"""
    matches = await match_service.get_match_history(player_id, limit, offset)
    history = []
    for match in matches:
        item = match.to_dict()
        item["problem"] = match.problem.to_summary()
        history.append(item)
    return {"matches": history, "limit": limit, "offset": offset}


@router.get(
    "/user/active",
    responses={401: {"model": ErrorResponse, "description": "인증 실패"}},
    summary="진행 중 매치 조회",
)
async def get_active_match(
    player_id: str = Depends(get_current_player_id),
    match_service: MatchService = Depends(get_match_service),
):
    match = await match_service.get_user_active_match(player_id)
    return {"match": match.to_dict() if match else None}


@router.get(
    "/{match_id}",
    responses={404: {"model": ErrorResponse, "description": "매치를 찾을 수 없음"}},
    summary="매치 상세 조회",
)
async def get_match(
    match_id: str,
    player_id: str = Depends(get_current_player_id),
    match_service: MatchService = Depends(get_match_service),
):
    match = await match_service.get_match_by_id(match_id)
    if not match:
        raise _error(status.HTTP_404_NOT_FOUND, NotFoundError.error_code, f"Match not found: {match_id}")
    return {"match": match.to_dict()}


@router.post(
    "/{match_id}/cancel",
    responses={
        401: {"model": ErrorResponse, "description": "API 키 오류"},
        404: {"model": ErrorResponse, "description": "매치를 찾을 수 없음"},
        409: {"model": ErrorResponse, "description": "이미 종료된 매치"},
    },
    summary="매치 취소 (관리자)",
    dependencies=[Depends(verify_admin_api_key)],
)
async def cancel_match(
    match_id: str,
    match_service: MatchService = Depends(get_match_service),
):
    """매치를 CANCELLED로 전이하고 참가자/관전자에게 알림"""
    try:
        outcome = await match_service.cancel_match(match_id)
    except NotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, e.error_code, str(e))
    except ConflictError as e:
        raise _error(status.HTTP_409_CONFLICT, e.error_code, str(e))

    logger.info(f"[MatchAPI] 관리자 취소 - match_id: {match_id}")
    return {"matchId": outcome.match_id, **outcome.to_event()}
