"""
주기 실행 스윕

매치메이킹 (2초), 매치 만료 (5초) 같은 백그라운드 작업을 고정 주기로 실행합니다.
한 주기가 실패하면 로그만 남기고 다음 주기에 다시 시도합니다.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicSweeper:
    """고정 주기 백그라운드 작업"""

    def __init__(self, name: str, interval: float, func: Callable[[], Awaitable[Any]]):
        self.name = name
        self.interval = interval
        self.func = func
        self.running = False

    async def run_once(self) -> bool:
        """
        한 주기 실행

        Returns:
            성공 여부
        """
        try:
            await self.func()
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{self.name}] 스윕 실패, 다음 주기에 재시도: {str(e)}", exc_info=True)
            return False

    async def start(self):
        self.running = True
        logger.info(f"[{self.name}] 스윕 시작 - interval: {self.interval}s")
        try:
            while self.running:
                await self.run_once()
                await asyncio.sleep(self.interval)
        finally:
            self.running = False
            logger.info(f"[{self.name}] 스윕 중지")

    def stop(self):
        self.running = False
