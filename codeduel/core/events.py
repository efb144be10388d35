"""
구독 채널

파이프라인 완료 결과, 매치 생성/종료 알림을 구독자에게 전달합니다.
모듈 전역 콜백 대신 인스턴스별 구독 목록을 사용합니다.
"""
import logging
from typing import Awaitable, Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], Awaitable[None]]


class Channel(Generic[T]):
    """비동기 구독 채널"""

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """
        구독자 등록

        Returns:
            구독 해제 함수
        """
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    async def publish(self, item: T) -> None:
        """
        모든 구독자에게 전달

        한 구독자의 실패가 다른 구독자 전달을 막지 않습니다.
        """
        for handler in list(self._handlers):
            try:
                await handler(item)
            except Exception as e:
                logger.error(f"[Channel:{self.name}] 구독자 처리 실패: {str(e)}", exc_info=True)
