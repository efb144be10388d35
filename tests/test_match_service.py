"""
매치 라이프사이클 서비스 테스트 (aiosqlite)
"""
from datetime import timedelta

import pytest

from codeduel.core.exceptions import ConflictError, NotFoundError, ValidationError
from codeduel.domain.models import utcnow
from codeduel.infrastructure.persistence.models.enums import EndReasonEnum, MatchStatusEnum
from codeduel.infrastructure.repositories import PlayerRepository


async def _rating(session_factory, player_id):
    async with session_factory() as db:
        return (await PlayerRepository(db).get_by_id(player_id)).rating


class Recorder:
    def __init__(self):
        self.items = []

    async def __call__(self, item):
        self.items.append(item)


@pytest.mark.asyncio
async def test_create_match_persists_and_registers_state(match_service, state_store):
    created = Recorder()
    match_service.match_created.subscribe(created)

    match = await match_service.create_match("alice", "bob")

    assert match.status == MatchStatusEnum.IN_PROGRESS
    assert match.player1.rating == 1200
    assert len(match.problem.test_cases) == 3
    assert created.items == [match]
    assert await state_store.get_active_matches() == [match.id]
    assert await state_store.get_match_players(match.id) == ("alice", "bob")
    assert await state_store.get_end_time(match.id) > utcnow()

    loaded = await match_service.get_match_by_id(match.id)
    assert loaded.player_ids == ["alice", "bob"]
    # 진행 중 매치 응답에는 숨김 테스트 제외
    assert len(loaded.to_dict()["problem"]["testCases"]) == 2


@pytest.mark.asyncio
async def test_create_match_with_missing_player_leaves_nothing(match_service, state_store):
    with pytest.raises(NotFoundError):
        await match_service.create_match("alice", "ghost")

    assert await match_service.get_user_active_match("alice") is None
    assert await state_store.get_active_matches() == []


@pytest.mark.asyncio
async def test_end_match_updates_ratings(match_service, session_factory):
    match = await match_service.create_match("alice", "bob")

    outcome = await match_service.end_match(match.id, "alice", EndReasonEnum.SOLVED)

    assert outcome.winner_id == "alice"
    assert outcome.loser_id == "bob"
    assert (outcome.winner_new_rating, outcome.loser_new_rating) == (1208, 992)
    assert await _rating(session_factory, "alice") == 1208
    assert await _rating(session_factory, "bob") == 992

    ended = await match_service.get_match_by_id(match.id)
    assert ended.status == MatchStatusEnum.COMPLETED
    assert ended.winner_id == "alice"
    assert ended.ended_at is not None


@pytest.mark.asyncio
async def test_end_match_twice_conflicts_without_rating_change(match_service, session_factory):
    match = await match_service.create_match("alice", "bob")
    await match_service.end_match(match.id, "alice", EndReasonEnum.SOLVED)

    with pytest.raises(ConflictError):
        await match_service.end_match(match.id, "bob", EndReasonEnum.SOLVED)

    assert await _rating(session_factory, "alice") == 1208
    assert await _rating(session_factory, "bob") == 992


@pytest.mark.asyncio
async def test_end_match_without_winner_keeps_ratings(match_service, session_factory):
    match = await match_service.create_match("alice", "bob")

    outcome = await match_service.end_match(match.id, None, EndReasonEnum.TIMEOUT)

    assert outcome.winner_id is None
    assert outcome.to_event() == {"winnerId": None, "reason": "TIMEOUT"}
    assert await _rating(session_factory, "alice") == 1200
    assert await _rating(session_factory, "bob") == 1000


@pytest.mark.asyncio
async def test_end_match_rejects_outsider_winner(match_service):
    match = await match_service.create_match("alice", "bob")

    with pytest.raises(ValidationError):
        await match_service.end_match(match.id, "carol", EndReasonEnum.SOLVED)


@pytest.mark.asyncio
async def test_end_unknown_match(match_service):
    with pytest.raises(NotFoundError):
        await match_service.end_match("missing", None, EndReasonEnum.TIMEOUT)


@pytest.mark.asyncio
async def test_conclude_match_cleans_up_and_broadcasts_once(match_service, state_store):
    ended = Recorder()
    match_service.match_ended.subscribe(ended)
    match = await match_service.create_match("alice", "bob")

    first = await match_service.conclude_match(match.id, "bob", EndReasonEnum.FORFEIT)
    second = await match_service.conclude_match(match.id, None, EndReasonEnum.TIMEOUT)

    assert first.winner_id == "bob"
    assert second is None
    assert [o.reason for o in ended.items] == [EndReasonEnum.FORFEIT]
    assert await state_store.get_active_matches() == []
    assert await state_store.get_match_by_player("alice") is None


@pytest.mark.asyncio
async def test_cancel_match(match_service):
    ended = Recorder()
    match_service.match_ended.subscribe(ended)
    match = await match_service.create_match("alice", "bob")

    outcome = await match_service.cancel_match(match.id)

    assert outcome.to_event() == {"winnerId": None, "reason": "CANCELLED"}
    assert (await match_service.get_match_by_id(match.id)).status == MatchStatusEnum.CANCELLED
    with pytest.raises(ConflictError):
        await match_service.cancel_match(match.id)
    assert len(ended.items) == 1


@pytest.mark.asyncio
async def test_expiry_sweep_ends_overdue_match_once(match_service, state_store, session_factory):
    ended = Recorder()
    match_service.match_ended.subscribe(ended)
    match = await match_service.create_match("alice", "bob")
    await state_store.set_end_time(match.id, utcnow() - timedelta(seconds=1))

    assert await match_service.expire_overdue_matches() == 1
    assert await match_service.expire_overdue_matches() == 0

    assert len(ended.items) == 1
    assert ended.items[0].to_event() == {"winnerId": None, "reason": "TIMEOUT"}
    assert await _rating(session_factory, "alice") == 1200
    assert await state_store.get_active_matches() == []


@pytest.mark.asyncio
async def test_expiry_sweep_skips_running_match(match_service, state_store):
    match = await match_service.create_match("alice", "bob")

    assert await match_service.expire_overdue_matches() == 0
    assert await state_store.get_active_matches() == [match.id]


@pytest.mark.asyncio
async def test_expiry_sweep_cleans_index_of_already_ended_match(match_service, state_store):
    match = await match_service.create_match("alice", "bob")
    # 다른 경로가 종료했지만 정리 전에 스윕이 돈 경우
    await match_service.end_match(match.id, "alice", EndReasonEnum.SOLVED)
    await state_store.set_end_time(match.id, utcnow() - timedelta(seconds=1))

    assert await match_service.expire_overdue_matches() == 0
    assert await state_store.get_active_matches() == []


@pytest.mark.asyncio
async def test_expiry_sweep_recovers_missing_timer(match_service, state_store):
    match = await match_service.create_match("alice", "bob")
    await state_store.backend.delete(f"match:{match.id}:endtime")

    assert await match_service.expire_overdue_matches() == 0
    assert await state_store.get_end_time(match.id) is not None

    later = utcnow() + timedelta(hours=1)
    assert await match_service.expire_overdue_matches(now=later) == 1


@pytest.mark.asyncio
async def test_active_and_history_queries(match_service):
    first = await match_service.create_match("alice", "bob")
    await match_service.end_match(first.id, "alice", EndReasonEnum.SOLVED)
    second = await match_service.create_match("alice", "carol")

    active = await match_service.get_user_active_match("alice")
    assert active.id == second.id

    history = await match_service.get_match_history("alice")
    assert [m.id for m in history] == [first.id]
    assert await match_service.get_match_history("alice", limit=10, offset=1) == []

    summaries = await match_service.get_active_match_summaries()
    assert [s.id for s in summaries] == [second.id]
    assert summaries[0].to_dict()["problemTitle"] == "Two Sum Lite"
