"""
실행 큐 어댑터 인터페이스 정의
"""
import enum
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from codeduel.domain.models import TestCase


class ExecutionMode(str, enum.Enum):
    """
    실행 모드

    RUN: 공개 테스트만 실행, 매치를 끝내지 않음
    SUBMIT: 전체 테스트 실행, 모두 통과하면 매치 종료
    """

    RUN = "run"
    SUBMIT = "submit"

    @property
    def is_run(self) -> bool:
        return self is ExecutionMode.RUN


def make_job_id(match_id: str, player_id: str, submitted_at: Optional[float] = None) -> str:
    """
    작업 ID 생성

    같은 밀리초에 들어온 실행과 제출도 구분되도록 임의 접미사를 붙입니다.
    """
    millis = int((submitted_at if submitted_at is not None else time.time()) * 1000)
    return f"{match_id}-{player_id}-{millis}-{uuid.uuid4().hex[:12]}"


@dataclass
class ExecutionJob:
    """코드 실행 작업"""

    job_id: str
    match_id: str
    player_id: str
    code: str
    language: str
    problem_id: str
    test_cases: List[TestCase]
    mode: ExecutionMode

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "matchId": self.match_id,
            "playerId": self.player_id,
            "code": self.code,
            "language": self.language,
            "problemId": self.problem_id,
            "testCases": [tc.to_dict() for tc in self.test_cases],
            "mode": self.mode.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionJob":
        return cls(
            job_id=data["jobId"],
            match_id=data["matchId"],
            player_id=data["playerId"],
            code=data["code"],
            language=data["language"],
            problem_id=data.get("problemId", ""),
            test_cases=[TestCase.from_dict(tc) for tc in data.get("testCases", [])],
            mode=ExecutionMode(data.get("mode", ExecutionMode.SUBMIT.value)),
        )


@dataclass
class TestCaseResult:
    """테스트 케이스별 실행 결과"""

    __test__ = False

    input: str
    expected_output: str
    actual_output: str
    passed: bool
    execution_time: int = 0  # ms
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": self.input,
            "expectedOutput": self.expected_output,
            "actualOutput": self.actual_output,
            "passed": self.passed,
            "executionTime": self.execution_time,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TestCaseResult":
        return cls(
            input=data.get("input", ""),
            expected_output=data.get("expectedOutput", ""),
            actual_output=data.get("actualOutput", ""),
            passed=bool(data.get("passed", False)),
            execution_time=int(data.get("executionTime", 0)),
            error=data.get("error"),
        )


@dataclass
class ExecutionResult:
    """실행 결과"""

    job_id: str
    match_id: str
    player_id: str
    mode: ExecutionMode
    success: bool
    output: str
    error: Optional[str] = None
    execution_time: int = 0  # ms
    tests_passed: int = 0
    tests_total: int = 0
    test_results: List[TestCaseResult] = field(default_factory=list)

    @property
    def is_run(self) -> bool:
        return self.mode.is_run

    @property
    def solved(self) -> bool:
        """제출 모드에서 모든 테스트 통과"""
        return (
            self.mode is ExecutionMode.SUBMIT
            and self.success
            and self.tests_total > 0
            and self.tests_passed == self.tests_total
        )

    @classmethod
    def failed(cls, job: ExecutionJob, error: str, execution_time: int = 0) -> "ExecutionResult":
        """큐 레벨 실패 시 합성하는 전체 실패 결과"""
        return cls(
            job_id=job.job_id,
            match_id=job.match_id,
            player_id=job.player_id,
            mode=job.mode,
            success=False,
            output="",
            error=error,
            execution_time=execution_time,
            tests_passed=0,
            tests_total=len(job.test_cases),
            test_results=[],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.job_id,
            "matchId": self.match_id,
            "playerId": self.player_id,
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "executionTime": self.execution_time,
            "testsPassed": self.tests_passed,
            "testsTotal": self.tests_total,
            "testResults": [r.to_dict() for r in self.test_results],
            "isRun": self.is_run,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        return cls(
            job_id=data["jobId"],
            match_id=data["matchId"],
            player_id=data["playerId"],
            mode=ExecutionMode.RUN if data.get("isRun") else ExecutionMode.SUBMIT,
            success=bool(data.get("success", False)),
            output=data.get("output", ""),
            error=data.get("error"),
            execution_time=int(data.get("executionTime", 0)),
            tests_passed=int(data.get("testsPassed", 0)),
            tests_total=int(data.get("testsTotal", 0)),
            test_results=[TestCaseResult.from_dict(r) for r in data.get("testResults", [])],
        )


class QueueAdapter(ABC):
    """실행 큐 어댑터 인터페이스"""

    @abstractmethod
    async def enqueue(self, job: ExecutionJob) -> str:
        """
        작업을 큐에 추가

        Args:
            job: 실행할 작업

        Returns:
            job_id: 작업 ID
        """
        pass

    @abstractmethod
    async def dequeue(self, timeout: float = 1.0) -> Optional[ExecutionJob]:
        """
        큐에서 작업을 가져옴 (한 작업은 한 번만 꺼내짐)

        Returns:
            ExecutionJob 또는 None (timeout 동안 큐가 비어있을 경우)
        """
        pass

    @abstractmethod
    async def get_result(self, job_id: str) -> Optional[ExecutionResult]:
        """
        실행 결과 조회

        Returns:
            ExecutionResult 또는 None (결과가 없을 경우)
        """
        pass

    @abstractmethod
    async def get_status(self, job_id: str) -> str:
        """
        작업 상태 조회

        Returns:
            상태 문자열: "pending", "processing", "completed", "failed", "unknown"
        """
        pass

    @abstractmethod
    async def save_result(self, job_id: str, result: ExecutionResult) -> bool:
        """
        실행 결과 저장

        Returns:
            저장 성공 여부
        """
        pass

    @abstractmethod
    async def set_status(self, job_id: str, status: str) -> bool:
        """
        작업 상태 설정

        Returns:
            설정 성공 여부
        """
        pass

    @abstractmethod
    async def pending_count(self) -> int:
        """대기 중인 작업 수"""
        pass
