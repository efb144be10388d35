"""
환경 설정 모듈
PostgreSQL, Redis, Piston 샌드박스, 매치메이킹 등의 설정을 관리합니다.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 환경 설정"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # 앱 기본 설정
    APP_NAME: str = "CodeDuel Match Server"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # FastAPI 설정
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3001

    # PostgreSQL 설정 (users, problems, matches)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "codeduel"

    @property
    def POSTGRES_URL(self) -> str:
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis 설정 (로비 큐, 매치 타이머, 채팅, 관전자)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    @property
    def REDIS_URL(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # False면 메모리 어댑터 사용 (개발/테스트)
    USE_REDIS_STATE: bool = True
    USE_REDIS_QUEUE: bool = True

    # Piston 설정 (코드 실행 샌드박스)
    PISTON_API_URL: str = "http://localhost:2000"
    PISTON_RUNTIME_CACHE_SECONDS: int = 300
    PISTON_RUN_TIMEOUT_MS: int = 5000
    PISTON_RUN_MEMORY_LIMIT: int = 128_000_000
    PISTON_COMPILE_TIMEOUT_MS: int = 10000
    PISTON_COMPILE_MEMORY_LIMIT: int = 256_000_000

    # 인증 서비스 (토큰 검증)
    AUTH_SERVICE_URL: str = "http://localhost:3002"
    AUTH_TIMEOUT_SECONDS: float = 5.0

    # 관리자 API 키 (None이면 검증 스킵 - 개발 환경)
    ADMIN_API_KEY: Optional[str] = None

    # 매치 설정
    MATCH_DURATION_MINUTES: int = 15
    MATCH_TIMER_GRACE_MINUTES: int = 5
    MATCH_CHAT_TTL_SECONDS: int = 3600
    MAX_CHAT_MESSAGES: int = 50
    MAX_CHAT_LENGTH: int = 500

    # 매치메이킹 설정
    MATCHMAKING_INTERVAL_SECONDS: float = 2.0
    EXPIRY_INTERVAL_SECONDS: float = 5.0
    MATCHMAKING_BASE_RANGE: int = 200
    MATCHMAKING_RANGE_STEP: int = 50
    MATCHMAKING_RANGE_STEP_SECONDS: int = 10
    MATCHMAKING_MAX_RANGE: int = 500

    # 코드 실행 Worker 설정
    EXECUTION_CONCURRENCY: int = 5
    EXECUTION_RATE_LIMIT: int = 10
    EXECUTION_RATE_PERIOD: float = 1.0
    EXECUTION_RESULT_TTL_SECONDS: int = 3600

    ENABLE_EXECUTION_WORKER: bool = True
    ENABLE_SWEEPERS: bool = True


@lru_cache()
def get_settings() -> Settings:
    """싱글톤 설정 객체 반환"""
    return Settings()


settings = get_settings()
