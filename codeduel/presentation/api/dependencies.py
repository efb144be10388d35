"""
API 의존성 주입
lifespan에서 app.state에 만든 객체를 라우터에 전달합니다.
"""
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from codeduel.application.services.execution_service import ExecutionPipeline
from codeduel.application.services.match_service import MatchService
from codeduel.core.exceptions import AuthError
from codeduel.core.security import IdentityVerifier, extract_bearer_token
from codeduel.domain.state import StateStore


def get_match_service(request: Request) -> MatchService:
    return request.app.state.match_service


def get_state_store(request: Request) -> StateStore:
    return request.app.state.state_store


def get_pipeline(request: Request) -> ExecutionPipeline:
    return request.app.state.pipeline


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


async def get_current_player_id(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> str:
    """Authorization: Bearer 토큰으로 플레이어 ID 확인"""
    verifier = get_identity_verifier(request)
    try:
        return await verifier.verify_token(extract_bearer_token(authorization))
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": True,
                "error_code": e.error_code,
                "error_message": str(e),
            },
        )
