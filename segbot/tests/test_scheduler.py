from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from services.scheduler import DeletionScheduler


@pytest.mark.asyncio
async def test_scheduled_action_runs_after_delay() -> None:
    scheduler = DeletionScheduler()
    action = AsyncMock()

    task = scheduler.schedule(1, 0.01, action)
    assert scheduler.is_pending(1)
    await task

    action.assert_awaited_once()
    assert scheduler.pending_count == 0


@pytest.mark.asyncio
async def test_cancel_prevents_action() -> None:
    scheduler = DeletionScheduler()
    action = AsyncMock()

    task = scheduler.schedule(1, 5, action)
    assert scheduler.cancel(1) is True
    with pytest.raises(asyncio.CancelledError):
        await task

    action.assert_not_awaited()
    assert scheduler.cancel(1) is False


@pytest.mark.asyncio
async def test_rescheduling_replaces_previous_task() -> None:
    scheduler = DeletionScheduler()
    first, second = AsyncMock(), AsyncMock()

    scheduler.schedule(1, 5, first)
    task = scheduler.schedule(1, 0, second)
    await task
    await asyncio.sleep(0)

    first.assert_not_awaited()
    second.assert_awaited_once()


@pytest.mark.asyncio
async def test_cancel_all_clears_every_channel() -> None:
    scheduler = DeletionScheduler()
    for channel_id in (1, 2, 3):
        scheduler.schedule(channel_id, 5, AsyncMock())

    assert scheduler.pending_count == 3
    assert scheduler.cancel_all() == 3
    assert scheduler.pending_count == 0
