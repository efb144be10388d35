"""
보안 관련 유틸리티
토큰 검증 (외부 인증 서비스), 관리자 API 키 검증
"""
import logging
from typing import Optional

import httpx
from fastapi import Header, HTTPException, status

from codeduel.core.config import settings
from codeduel.core.exceptions import AuthError

logger = logging.getLogger(__name__)


class IdentityVerifier:
    """
    외부 인증 서비스 클라이언트

    토큰 발급/OAuth는 인증 서비스가 담당하고, 여기서는 토큰을 플레이어 ID로만 변환합니다.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = (api_url or settings.AUTH_SERVICE_URL).rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout or settings.AUTH_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def verify_token(self, token: Optional[str]) -> str:
        """
        토큰 검증

        Args:
            token: 액세스 토큰

        Returns:
            플레이어 ID

        Raises:
            AuthError: 토큰 누락, 검증 실패, 인증 서비스 연결 실패
        """
        if not token:
            raise AuthError("Authentication required")

        try:
            response = await self.client.post(
                f"{self.api_url}/api/auth/verify",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"[Auth] 인증 서비스 호출 실패: {str(e)}")
            raise AuthError("Authentication service unavailable") from e

        if response.status_code != 200:
            logger.info(f"[Auth] 토큰 거부 - status: {response.status_code}")
            raise AuthError("Invalid token")

        try:
            body = response.json()
        except ValueError as e:
            raise AuthError("Invalid token") from e

        player_id = body.get("playerId") if isinstance(body, dict) else None
        if not player_id:
            raise AuthError("Invalid token")
        return str(player_id)

    async def close(self):
        """클라이언트 종료"""
        await self.client.aclose()


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Authorization 헤더에서 Bearer 토큰 추출"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def verify_admin_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> bool:
    """관리자 요청의 API 키 검증"""
    if settings.ADMIN_API_KEY is None:
        # API 키가 설정되지 않은 경우 검증 스킵 (개발 환경)
        return True

    if x_api_key is None or x_api_key != settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return True
