"""
실시간 이벤트 페이로드 스키마
"""
from pydantic import BaseModel, Field


class CodeSubmissionPayload(BaseModel):
    """submit_code / run_code 페이로드"""
    matchId: str = Field(..., min_length=1, description="매치 ID")
    code: str = Field(..., min_length=1, description="제출 코드")
    language: str = Field(..., min_length=1, description="프로그래밍 언어")


class CodeUpdatePayload(BaseModel):
    """code_update 페이로드"""
    matchId: str = Field(..., min_length=1, description="매치 ID")
    code: str = Field("", description="현재 코드")


class MatchMessagePayload(BaseModel):
    """send_match_message 페이로드"""
    matchId: str = Field(..., min_length=1, description="매치 ID")
    content: str = Field(..., description="메시지 내용")
