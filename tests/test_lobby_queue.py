"""
로비 대기열 테스트
"""
import pytest

from codeduel.domain.matchmaking import compute_search_range


@pytest.mark.parametrize(
    "wait_seconds, expected",
    [
        (0, 200),
        (9.9, 200),
        (10, 250),
        (35, 300),
        (60, 500),
        (95, 500),
        (10_000, 500),
    ],
)
def test_search_range_expands_with_wait(wait_seconds, expected):
    assert compute_search_range(wait_seconds) == expected


@pytest.mark.asyncio
async def test_join_and_position(lobby_queue):
    await lobby_queue.join("alice", 1200)
    await lobby_queue.join("bob", 1000)

    assert await lobby_queue.size() == 2
    assert await lobby_queue.contains("alice")
    # 순번은 레이팅 오름차순 (sorted set)
    assert await lobby_queue.position("bob") == 1
    assert await lobby_queue.position("alice") == 2
    assert await lobby_queue.position("carol") == -1


@pytest.mark.asyncio
async def test_rejoin_keeps_original_join_time(lobby_queue, clock):
    first = await lobby_queue.join("alice", 1200)
    clock.advance(30)
    second = await lobby_queue.join("alice", 1210)

    assert second.joined_at == first.joined_at
    entry = await lobby_queue.get_entry("alice")
    assert entry.rating == 1210


@pytest.mark.asyncio
async def test_join_with_explicit_time_restores_it(lobby_queue, clock):
    await lobby_queue.join("alice", 1200, joined_at=clock.now - 50)
    assert await lobby_queue.get_join_time("alice") == clock.now - 50


@pytest.mark.asyncio
async def test_leave_reports_whether_removed(lobby_queue):
    await lobby_queue.join("alice", 1200)

    assert await lobby_queue.leave("alice") is True
    assert await lobby_queue.leave("alice") is False
    assert await lobby_queue.get_join_time("alice") is None


@pytest.mark.asyncio
async def test_find_candidate_never_returns_requester(lobby_queue):
    await lobby_queue.join("alice", 1200)

    assert await lobby_queue.find_candidate("alice", 1200, 500) is None


@pytest.mark.asyncio
async def test_find_candidate_respects_range(lobby_queue):
    await lobby_queue.join("alice", 1200)
    await lobby_queue.join("bob", 1000)

    assert await lobby_queue.find_candidate("alice", 1200, 199) is None
    assert await lobby_queue.find_candidate("alice", 1200, 200) == "bob"


@pytest.mark.asyncio
async def test_find_candidate_prefers_earliest_join(lobby_queue, clock):
    await lobby_queue.join("carol", 1150)
    clock.advance(5)
    await lobby_queue.join("bob", 1190)
    clock.advance(5)
    await lobby_queue.join("alice", 1200)

    # bob이 레이팅은 더 가깝지만 carol이 먼저 대기
    assert await lobby_queue.find_candidate("alice", 1200, 200) == "carol"


@pytest.mark.asyncio
async def test_find_candidate_tie_breaks_on_rating_gap(lobby_queue, clock):
    await lobby_queue.join("carol", 1100, joined_at=clock.now)
    await lobby_queue.join("bob", 1190, joined_at=clock.now)
    await lobby_queue.join("alice", 1200)

    assert await lobby_queue.find_candidate("alice", 1200, 200) == "bob"


@pytest.mark.asyncio
async def test_expanding_range_uses_wait_time(lobby_queue, clock):
    await lobby_queue.join("dave", 1650)
    await lobby_queue.join("alice", 1200)

    # 대기 0초: 범위 200
    assert await lobby_queue.find_candidate_with_expanding_range("alice", 1200) is None

    # 대기 60초 이상: 범위 500
    clock.advance(60)
    assert await lobby_queue.find_candidate_with_expanding_range("alice", 1200) == "dave"


@pytest.mark.asyncio
async def test_entries_sorted_by_join_time(lobby_queue, clock):
    await lobby_queue.join("bob", 1000)
    clock.advance(1)
    await lobby_queue.join("alice", 1200)
    clock.advance(1)
    await lobby_queue.join("carol", 900)

    assert [e.player_id for e in await lobby_queue.entries()] == ["bob", "alice", "carol"]
