"""
Pytest 설정 및 Fixtures
"""
import asyncio
import sys
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from codeduel.application.services.execution_service import ExecutionPipeline
from codeduel.application.services.match_service import MatchService
from codeduel.application.services.matchmaking_service import MatchmakingService
from codeduel.domain.matchmaking import LobbyQueue
from codeduel.domain.models import Player
from codeduel.domain.queue.adapters.memory import MemoryQueueAdapter
from codeduel.domain.state import StateStore
from codeduel.domain.state.adapters.memory import MemoryStateBackend
from codeduel.infrastructure.cache.redis_client import RedisClient
from codeduel.infrastructure.persistence import models
from codeduel.infrastructure.persistence.models.enums import DifficultyEnum
from codeduel.infrastructure.persistence.session import Base
from codeduel.presentation.realtime.connection import Connection
from codeduel.presentation.realtime.connection_manager import ConnectionManager
from codeduel.presentation.realtime.hub import SessionHub

# Windows에서 SelectorEventLoop 사용
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# 테스트용 환경 변수 설정
@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    """테스트 환경 변수 설정"""
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("POSTGRES_HOST", "localhost")
    monkeypatch.setenv("REDIS_HOST", "localhost")
    monkeypatch.setenv("USE_REDIS_STATE", "false")
    monkeypatch.setenv("USE_REDIS_QUEUE", "false")


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingConnection(Connection):
    """전송한 이벤트를 기록하는 테스트용 연결"""

    def __init__(self, player: Player, connection_id: str = None):
        super().__init__(player, websocket=None, connection_id=connection_id)
        self.sent: List[Dict[str, Any]] = []

    async def _transmit(self, message: Dict[str, Any]) -> None:
        self.sent.append(message)

    def events(self, name: str) -> List[Any]:
        return [m["data"] for m in self.sent if m["type"] == name]

    def event_names(self) -> List[str]:
        return [m["type"] for m in self.sent]



class UnreachableRedis:
    """모든 명령이 연결 오류를 내는 Redis 커넥션"""

    def __getattr__(self, name):
        async def command(*args, **kwargs):
            raise RedisConnectionError("Connection refused")
        return command


class UnreachableRedisClient(RedisClient):
    """연결이 끊긴 Redis 클라이언트"""

    @property
    def client(self):
        return UnreachableRedis()


@pytest.fixture
def unreachable_redis():
    return UnreachableRedisClient()

# ===== DB =====

PLAYERS = [
    ("alice", "alice", 1200),
    ("bob", "bob", 1000),
    ("carol", "carol", 1100),
    ("dave", "dave", 2000),
]

PROBLEM_ID = "problem-sum"

TEST_CASES = [
    {"input": "1 2", "expectedOutput": "3", "isHidden": False},
    {"input": "5 7", "expectedOutput": "12", "isHidden": False},
    {"input": "100 200", "expectedOutput": "300", "isHidden": True},
]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        for player_id, username, rating in PLAYERS:
            db.add(models.User(id=player_id, username=username, elo_rating=rating))
        db.add(models.Problem(
            id=PROBLEM_ID,
            title="Two Sum Lite",
            description="Print the sum of two integers.",
            difficulty=DifficultyEnum.EASY,
            test_cases=TEST_CASES,
        ))
        await db.commit()
    return factory


# ===== 상태 저장소 / 서비스 =====

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_backend():
    return MemoryStateBackend()


@pytest.fixture
def state_store(state_backend):
    return StateStore(state_backend)


@pytest.fixture
def lobby_queue(state_backend, clock):
    return LobbyQueue(state_backend, clock=clock)


@pytest.fixture
def match_service(session_factory, state_store):
    return MatchService(session_factory, state_store)


@pytest.fixture
def matchmaking_service(lobby_queue, match_service, state_store, session_factory):
    return MatchmakingService(lobby_queue, match_service, state_store, session_factory)


@pytest.fixture
def pipeline():
    return ExecutionPipeline(MemoryQueueAdapter())


@pytest.fixture
def hub(state_store, match_service, matchmaking_service, pipeline):
    hub = SessionHub(ConnectionManager(), state_store, match_service, matchmaking_service, pipeline)
    hub.subscribe()
    yield hub
    hub.unsubscribe()


@pytest.fixture
def make_connection():
    def _make(player_id: str, rating: int = 1000) -> RecordingConnection:
        return RecordingConnection(Player(id=player_id, username=player_id, rating=rating))
    return _make
