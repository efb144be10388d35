"""
헬스 체크 API
"""
import logging

from fastapi import APIRouter, Request

from codeduel.core.config import settings
from codeduel.infrastructure.persistence.session import ping_db
from codeduel.presentation.schemas.common import HealthResponse

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="헬스 체크",
    description="Redis, PostgreSQL, Piston 연결 상태를 확인합니다.",
)
async def health_check(request: Request) -> HealthResponse:
    """헬스 체크"""
    state = request.app.state

    try:
        redis_ok = await state.state_store.backend.ping()
    except Exception as e:
        logger.error(f"[Health] Redis 확인 실패: {str(e)}")
        redis_ok = False

    db_ok = await ping_db(state.session_factory)

    sandbox = None
    piston_client = getattr(state, "piston_client", None)
    if piston_client is not None:
        sandbox = "connected" if await piston_client.health_check() else "unavailable"

    pending_jobs = None
    try:
        pending_jobs = (await state.pipeline.get_stats())["pending"]
    except Exception as e:
        logger.error(f"[Health] 실행 큐 확인 실패: {str(e)}")

    return HealthResponse(
        status="healthy" if redis_ok and db_ok else "degraded",
        version=settings.APP_VERSION,
        redis="connected" if redis_ok else "disconnected",
        database="connected" if db_ok else "disconnected",
        sandbox=sandbox,
        pending_jobs=pending_jobs,
    )
