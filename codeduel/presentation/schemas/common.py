"""
공통 스키마
"""
from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """에러 응답"""
    error: bool = Field(True, description="에러 여부")
    error_code: str = Field(..., description="에러 코드")
    error_message: str = Field(..., description="에러 메시지")


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str = Field(..., description="healthy / degraded")
    version: str = Field(..., description="서버 버전")
    redis: str = Field(..., description="Redis 상태")
    database: str = Field(..., description="DB 상태")
    sandbox: Optional[str] = Field(None, description="Piston 상태")
    pending_jobs: Optional[int] = Field(None, description="대기 중인 실행 작업 수")
