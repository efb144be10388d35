"""
REST API 테스트 (httpx.ASGITransport)
"""
import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from codeduel.core.config import settings
from codeduel.core.security import IdentityVerifier
from codeduel.infrastructure.persistence.models.enums import EndReasonEnum
from codeduel.presentation.api.routes import health_router, matches_router


def _auth_handler(request: httpx.Request) -> httpx.Response:
    # 테스트용 인증 서비스: "Bearer <player_id>"
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    if token in ("alice", "bob", "carol"):
        return httpx.Response(200, json={"playerId": token})
    return httpx.Response(401)


@pytest_asyncio.fixture
async def client(session_factory, state_store, match_service, pipeline):
    app = FastAPI()
    app.include_router(health_router)
    app.include_router(matches_router)
    app.state.session_factory = session_factory
    app.state.state_store = state_store
    app.state.match_service = match_service
    app.state.pipeline = pipeline
    app.state.identity_verifier = IdentityVerifier(
        api_url="http://auth.test",
        transport=httpx.MockTransport(_auth_handler),
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    await app.state.identity_verifier.close()


def _auth(player_id):
    return {"Authorization": f"Bearer {player_id}"}


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["pending_jobs"] == 0


@pytest.mark.asyncio
async def test_requires_auth(client):
    response = await client.get("/api/matches/user/active")
    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "AUTH_ERROR"

    response = await client.get("/api/matches/user/active", headers=_auth("mallory"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_active_match_and_details(client, match_service):
    match = await match_service.create_match("alice", "bob")

    response = await client.get("/api/matches/user/active", headers=_auth("alice"))
    assert response.json()["match"]["id"] == match.id

    response = await client.get("/api/matches/user/active", headers=_auth("carol"))
    assert response.json() == {"match": None}

    response = await client.get(f"/api/matches/{match.id}", headers=_auth("carol"))
    assert response.status_code == 200
    test_cases = response.json()["match"]["problem"]["testCases"]
    assert all(not tc["isHidden"] for tc in test_cases)

    response = await client.get("/api/matches/missing", headers=_auth("carol"))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_history(client, match_service):
    match = await match_service.create_match("alice", "bob")
    await match_service.end_match(match.id, "bob", EndReasonEnum.SOLVED)

    response = await client.get("/api/matches/user/history?limit=5", headers=_auth("alice"))

    body = response.json()
    assert [m["id"] for m in body["matches"]] == [match.id]
    assert body["matches"][0]["winnerId"] == "bob"
    assert body["matches"][0]["problem"] == {"id": "problem-sum", "title": "Two Sum Lite", "difficulty": "EASY"}


@pytest.mark.asyncio
async def test_admin_cancel(client, match_service, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")
    match = await match_service.create_match("alice", "bob")

    response = await client.post(f"/api/matches/{match.id}/cancel")
    assert response.status_code == 401

    response = await client.post(f"/api/matches/{match.id}/cancel", headers={"X-API-Key": "secret"})
    assert response.status_code == 200
    assert response.json() == {"matchId": match.id, "winnerId": None, "reason": "CANCELLED"}

    response = await client.post(f"/api/matches/{match.id}/cancel", headers={"X-API-Key": "secret"})
    assert response.status_code == 409

    response = await client.post("/api/matches/missing/cancel", headers={"X-API-Key": "secret"})
    assert response.status_code == 404
