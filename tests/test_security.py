"""
인증 서비스 클라이언트 / 관리자 키 테스트
"""
import httpx
import pytest
from fastapi import HTTPException

from codeduel.core.config import settings
from codeduel.core.exceptions import AuthError
from codeduel.core.security import IdentityVerifier, extract_bearer_token, verify_admin_api_key


def _verifier(handler) -> IdentityVerifier:
    return IdentityVerifier(api_url="http://auth.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_verify_token_returns_player_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"playerId": "alice"})

    verifier = _verifier(handler)
    assert await verifier.verify_token("tok-123") == "alice"
    assert seen == {"path": "/api/auth/verify", "auth": "Bearer tok-123"}
    await verifier.close()


@pytest.mark.asyncio
async def test_missing_token_rejected_without_call():
    def handler(request):
        raise AssertionError("should not be called")

    verifier = _verifier(handler)
    with pytest.raises(AuthError):
        await verifier.verify_token(None)
    await verifier.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(401, json={"error": "expired"}),
        httpx.Response(200, json={"username": "alice"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=[]),
        httpx.Response(200, json="abc"),
        httpx.Response(200, json=42),
    ],
)
async def test_invalid_responses_raise_auth_error(response):
    verifier = _verifier(lambda request: response)
    with pytest.raises(AuthError):
        await verifier.verify_token("tok")
    await verifier.close()


@pytest.mark.asyncio
async def test_unreachable_auth_service_raises_auth_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    verifier = _verifier(handler)
    with pytest.raises(AuthError):
        await verifier.verify_token("tok")
    await verifier.close()


def test_extract_bearer_token():
    assert extract_bearer_token("Bearer abc") == "abc"
    assert extract_bearer_token("bearer abc") == "abc"
    assert extract_bearer_token("Basic abc") is None
    assert extract_bearer_token(None) is None


@pytest.mark.asyncio
async def test_admin_api_key(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")

    assert await verify_admin_api_key("secret") is True
    with pytest.raises(HTTPException) as exc_info:
        await verify_admin_api_key("wrong")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_admin_api_key_skipped_when_unset(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)
    assert await verify_admin_api_key(None) is True
