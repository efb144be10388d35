"""
구독 채널 / 주기 스윕 테스트
"""
import asyncio

import pytest

from codeduel.application.workers.sweeper import PeriodicSweeper
from codeduel.core.events import Channel
from codeduel.core.exceptions import InfraError


@pytest.mark.asyncio
async def test_channel_delivers_to_all_subscribers_despite_failure():
    channel = Channel("test")
    received = []

    async def broken(item):
        raise RuntimeError("subscriber bug")

    async def collect(item):
        received.append(item)

    channel.subscribe(broken)
    unsubscribe = channel.subscribe(collect)
    await channel.publish(1)

    unsubscribe()
    await channel.publish(2)

    assert received == [1]
    assert channel.subscriber_count == 1


@pytest.mark.asyncio
async def test_sweeper_skips_failed_cycle_and_keeps_running():
    calls = []

    async def flaky():
        calls.append(len(calls))
        if len(calls) == 1:
            raise InfraError("redis down")

    sweeper = PeriodicSweeper("Test", 0.01, flaky)
    assert await sweeper.run_once() is False
    assert await sweeper.run_once() is True

    task = asyncio.create_task(sweeper.start())
    await asyncio.sleep(0.05)
    sweeper.stop()
    await asyncio.wait_for(task, timeout=1)

    assert len(calls) > 2
    assert sweeper.running is False
