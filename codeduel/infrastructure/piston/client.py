"""
Piston API 클라이언트
코드 실행 및 테스트 케이스 채점
"""
import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from codeduel.core.config import settings
from codeduel.core.exceptions import ExecutionError
from codeduel.domain.models import TestCase
from codeduel.domain.queue.adapters.base import TestCaseResult

logger = logging.getLogger(__name__)


class PistonClient:
    """Piston API 클라이언트"""

    # 언어 이름 → Piston 런타임 매핑
    LANGUAGE_MAP = {
        "javascript": {"language": "javascript", "version": "*"},
        "python": {"language": "python", "version": "3"},
        "java": {"language": "java", "version": "*"},
        "cpp": {"language": "c++", "version": "*"},
        "c": {"language": "c", "version": "*"},
        "go": {"language": "go", "version": "*"},
        "rust": {"language": "rust", "version": "*"},
        "typescript": {"language": "typescript", "version": "*"},
    }

    def __init__(
        self,
        api_url: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock=time.monotonic,
    ):
        """
        Args:
            api_url: Piston API URL (기본값: settings.PISTON_API_URL)
            cache_ttl: 런타임 목록 캐시 유지 시간 (초)
            transport: 테스트용 httpx transport
        """
        self.api_url = (api_url or settings.PISTON_API_URL).rstrip("/")
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.PISTON_RUNTIME_CACHE_SECONDS
        self.client = httpx.AsyncClient(timeout=30.0, transport=transport)
        self._clock = clock
        self._runtimes_cache: Optional[List[Dict[str, Any]]] = None
        self._runtimes_cached_at: float = 0.0

    async def get_runtimes(self) -> List[Dict[str, Any]]:
        """
        사용 가능한 런타임 목록 (캐시)

        조회 실패 시 만료된 캐시라도 있으면 그것을 반환합니다.
        """
        now = self._clock()
        if self._runtimes_cache is not None and now - self._runtimes_cached_at < self.cache_ttl:
            return self._runtimes_cache

        try:
            response = await self.client.get(f"{self.api_url}/api/v2/runtimes")
            response.raise_for_status()
            self._runtimes_cache = response.json()
            self._runtimes_cached_at = now
            return self._runtimes_cache
        except httpx.HTTPError as e:
            logger.error(f"[Piston] 런타임 목록 조회 실패: {str(e)}")
            if self._runtimes_cache is not None:
                return self._runtimes_cache
            raise ExecutionError(f"Sandbox unavailable: {str(e)}") from e

    async def find_runtime(self, language: str) -> Optional[Dict[str, str]]:
        """
        언어 이름에 맞는 런타임 탐색

        Returns:
            {"language": ..., "version": ...} 또는 None (지원하지 않는 언어)
        """
        name = language.lower()
        mapping = self.LANGUAGE_MAP.get(name)
        if not mapping:
            return None

        for runtime in await self.get_runtimes():
            aliases = runtime.get("aliases", [])
            if (
                runtime.get("language") == mapping["language"]
                or mapping["language"] in aliases
                or name in aliases
            ):
                return {"language": runtime["language"], "version": runtime["version"]}
        return None

    async def execute(
        self,
        language: str,
        code: str,
        stdin: str = "",
        runtime: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        코드 실행 (실행 5초/128MB, 컴파일 10초/256MB 제한)

        Raises:
            ExecutionError: 지원하지 않는 언어, 샌드박스 오류
        """
        runtime = runtime or await self.find_runtime(language)
        if not runtime:
            raise ExecutionError(f"Unsupported language: {language}")

        payload = {
            "language": runtime["language"],
            "version": runtime["version"],
            "files": [{"content": code}],
            "stdin": stdin or "",
            "run_timeout": settings.PISTON_RUN_TIMEOUT_MS,
            "run_memory_limit": settings.PISTON_RUN_MEMORY_LIMIT,
            "compile_timeout": settings.PISTON_COMPILE_TIMEOUT_MS,
            "compile_memory_limit": settings.PISTON_COMPILE_MEMORY_LIMIT,
        }

        try:
            response = await self.client.post(f"{self.api_url}/api/v2/execute", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[Piston] 실행 요청 실패: {str(e)}")
            raise ExecutionError(f"Sandbox unavailable: {str(e)}") from e

        if response.status_code >= 400:
            logger.error(f"[Piston] HTTP 에러 - status: {response.status_code}, response: {response.text}")
            raise ExecutionError(f"Piston execution failed: {response.status_code} - {response.text}")

        return response.json()

    async def run_test_cases(
        self,
        language: str,
        code: str,
        test_cases: List[TestCase],
    ) -> List[TestCaseResult]:
        """
        여러 테스트 케이스 실행

        출력은 앞뒤 공백을 제거해 비교하고, 종료 코드가 0이 아니거나
        stderr가 있으면 실패로 처리합니다. 컴파일 실패는 실행 없이 실패 처리합니다.
        """
        try:
            runtime = await self.find_runtime(language)
        except ExecutionError as e:
            return [self._error_result(tc, str(e)) for tc in test_cases]
        if not runtime:
            error = f"Unsupported language: {language}"
            return [self._error_result(tc, error) for tc in test_cases]

        results = []
        for i, test_case in enumerate(test_cases):
            logger.debug(f"[Piston] 테스트 케이스 {i+1}/{len(test_cases)} 실행 중...")
            started = time.monotonic()

            try:
                response = await self.execute(language, code, test_case.input, runtime=runtime)
            except ExecutionError as e:
                results.append(self._error_result(test_case, str(e), self._elapsed_ms(started)))
                continue

            execution_time = self._elapsed_ms(started)

            compile_stage = response.get("compile")
            if compile_stage and compile_stage.get("code") not in (0, None):
                error = compile_stage.get("stderr") or compile_stage.get("output") or "Compilation failed"
                results.append(self._error_result(test_case, error, execution_time))
                continue

            run_stage = response.get("run") or {}
            error = None
            if run_stage.get("code") != 0 or run_stage.get("stderr"):
                error = run_stage.get("stderr") or self._exit_reason(run_stage)
                actual_output = run_stage.get("stdout") or ""
            else:
                actual_output = run_stage.get("stdout") or run_stage.get("output") or ""

            actual = actual_output.strip()
            expected = test_case.expected_output.strip()
            results.append(TestCaseResult(
                input=test_case.input,
                expected_output=test_case.expected_output,
                actual_output=actual,
                passed=actual == expected and error is None,
                execution_time=execution_time,
                error=error,
            ))

        return results

    async def health_check(self) -> bool:
        """Piston 서비스 사용 가능 여부"""
        try:
            response = await self.client.get(f"{self.api_url}/api/v2/runtimes")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    @staticmethod
    def _exit_reason(stage: Dict[str, Any]) -> str:
        if stage.get("signal"):
            return f"Killed by {stage['signal']}"
        return f"Exited with code {stage.get('code')}"

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    @staticmethod
    def _error_result(test_case: TestCase, error: str, execution_time: int = 0) -> TestCaseResult:
        return TestCaseResult(
            input=test_case.input,
            expected_output=test_case.expected_output,
            actual_output="",
            passed=False,
            execution_time=execution_time,
            error=error,
        )

    async def close(self):
        """클라이언트 종료"""
        await self.client.aclose()
