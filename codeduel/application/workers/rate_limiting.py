"""
Rate Limiter

Piston 호출 전에 초당 작업 투입 수를 제한합니다.
"""
import asyncio
import logging
import time
from typing import Callable, List

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    슬라이딩 윈도우 Rate Limiter

    사용 예시:
        ```python
        limiter = RateLimiter(max_calls=10, period=1.0)
        await limiter.acquire()
        ```
    """

    def __init__(
        self,
        max_calls: int = 10,
        period: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            max_calls: 주어진 기간 내 최대 호출 횟수
            period: 기간 (초)
        """
        self.max_calls = max_calls
        self.period = period
        self._clock = clock

        # 호출 기록 (timestamp 목록)
        self._call_history: List[float] = []
        self._lock = asyncio.Lock()

    def _clean_old_calls(self, now: float):
        """오래된 호출 기록 제거"""
        cutoff_time = now - self.period
        self._call_history = [
            timestamp for timestamp in self._call_history
            if timestamp > cutoff_time
        ]

    async def _check_rate_limit(self) -> float:
        """
        Rate limit 체크 및 대기 시간 계산

        Returns:
            대기 시간 (초), 0이면 호출 기록에 추가됨
        """
        async with self._lock:
            now = self._clock()
            self._clean_old_calls(now)

            if len(self._call_history) >= self.max_calls:
                oldest_call = self._call_history[0]
                return max(0.0, oldest_call + self.period - now)

            self._call_history.append(now)
            return 0.0

    async def acquire(self) -> None:
        """호출 슬롯을 얻을 때까지 대기"""
        while True:
            wait_time = await self._check_rate_limit()
            if wait_time <= 0:
                return
            logger.debug(f"[RateLimiter] 제한 도달, {wait_time:.2f}초 대기")
            await asyncio.sleep(wait_time)
