"""
FastAPI 메인 애플리케이션
CodeDuel Match Server
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codeduel.application.services.execution_service import ExecutionPipeline
from codeduel.application.services.match_service import MatchService
from codeduel.application.services.matchmaking_service import MatchmakingService
from codeduel.application.workers.execution_worker import ExecutionWorker
from codeduel.application.workers.sweeper import PeriodicSweeper
from codeduel.core.config import settings
from codeduel.core.security import IdentityVerifier
from codeduel.domain.matchmaking import LobbyQueue
from codeduel.domain.queue import create_queue_adapter
from codeduel.domain.state import StateStore, create_state_backend
from codeduel.infrastructure.cache.redis_client import redis_client
from codeduel.infrastructure.persistence.session import AsyncSessionLocal, close_db, init_db
from codeduel.infrastructure.piston.client import PistonClient
from codeduel.presentation.api.routes import health_router, matches_router, realtime_router
from codeduel.presentation.realtime.connection_manager import ConnectionManager
from codeduel.presentation.realtime.hub import SessionHub

# 로깅 설정
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def _cancel_tasks(tasks: List[asyncio.Task]):
    for task in reversed(tasks):
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"백그라운드 작업 종료 오류: {str(e)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리
    - startup: Redis, PostgreSQL 연결, 서비스 구성, Worker/스윕 시작
    - shutdown: Worker/스윕 중지, 연결 종료
    """
    logger.info("Starting CodeDuel Match Server...")

    # Redis 연결
    if settings.USE_REDIS_STATE or settings.USE_REDIS_QUEUE:
        try:
            await redis_client.connect()
            logger.info("Redis 연결 성공")
        except Exception as e:
            logger.error(f"Redis 연결 실패: {str(e)}")
            raise

    # PostgreSQL 연결
    try:
        await init_db()
        logger.info("PostgreSQL 연결 성공")
    except Exception as e:
        logger.error(f"PostgreSQL 연결 실패: {str(e)}")
        raise

    # 서비스 구성
    state_store = StateStore(create_state_backend())
    pipeline = ExecutionPipeline(create_queue_adapter())
    piston_client = PistonClient()
    identity_verifier = IdentityVerifier()

    match_service = MatchService(AsyncSessionLocal, state_store)
    matchmaking_service = MatchmakingService(
        LobbyQueue(state_store.backend),
        match_service,
        state_store,
        AsyncSessionLocal,
    )
    hub = SessionHub(ConnectionManager(), state_store, match_service, matchmaking_service, pipeline)
    hub.subscribe()

    app.state.session_factory = AsyncSessionLocal
    app.state.state_store = state_store
    app.state.pipeline = pipeline
    app.state.piston_client = piston_client
    app.state.identity_verifier = identity_verifier
    app.state.match_service = match_service
    app.state.hub = hub

    tasks: List[asyncio.Task] = []

    # 실행 Worker 풀
    worker = ExecutionWorker(pipeline, piston_client)
    if settings.ENABLE_EXECUTION_WORKER:
        tasks.append(asyncio.create_task(worker.start()))
        logger.info("[ExecutionWorker] Worker 백그라운드 시작")
    else:
        logger.info("[ExecutionWorker] Worker 비활성화 (ENABLE_EXECUTION_WORKER=false)")

    # 매치메이킹 / 만료 스윕
    if settings.ENABLE_SWEEPERS:
        sweepers = [
            PeriodicSweeper("Matchmaking", settings.MATCHMAKING_INTERVAL_SECONDS, matchmaking_service.sweep),
            PeriodicSweeper("Expiry", settings.EXPIRY_INTERVAL_SECONDS, match_service.expire_overdue_matches),
        ]
        tasks.extend(asyncio.create_task(sweeper.start()) for sweeper in sweepers)

    logger.info(f"서버 시작 완료: http://{settings.API_HOST}:{settings.API_PORT}")

    yield

    # Shutdown
    logger.info("Shutting down...")

    worker.stop()
    await _cancel_tasks(tasks)
    hub.unsubscribe()

    await piston_client.close()
    await identity_verifier.close()
    if settings.USE_REDIS_STATE or settings.USE_REDIS_QUEUE:
        await redis_client.close()
    await close_db()

    logger.info("서버 종료 완료")


# FastAPI 앱 생성
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## CodeDuel Match Server

1대1 실시간 코딩 대결 서버

### 기능
- ⚔️ 레이팅 기반 매치메이킹
- 🧪 Piston 샌드박스 코드 채점
- 📡 실시간 코드 중계 및 관전
- 🏆 ELO 레이팅
""",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 프로덕션에서는 특정 도메인만 허용
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 라우터 등록
app.include_router(health_router)
app.include_router(matches_router)
app.include_router(realtime_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "codeduel.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
