"""Tests for PeriodicTask."""
from __future__ import annotations

import asyncio

import pytest

from foxyswitch.tasks import PeriodicTask


@pytest.mark.asyncio
async def test_run_once_records_success() -> None:
    calls = []

    async def job():
        calls.append(1)

    task = PeriodicTask("job", job, 60)
    assert await task.run_once() is True
    assert calls == [1]
    assert task.status.runs == 1
    assert task.status.last_ok_at is not None
    assert task.status.error is None


@pytest.mark.asyncio
async def test_run_once_swallows_and_records_failure() -> None:
    async def job():
        raise RuntimeError("login failed")

    task = PeriodicTask("job", job, 60)
    assert await task.run_once() is False
    assert task.status.error == "login failed"
    assert task.status.last_ok_at is None


@pytest.mark.asyncio
async def test_run_once_times_out() -> None:
    async def job():
        await asyncio.sleep(1)

    task = PeriodicTask("slow", job, 60, timeout=0.01)
    assert await task.run_once() is False
    assert task.status.error == "TimeoutError"


@pytest.mark.asyncio
async def test_trigger_wakes_loop_early_and_stop_cancels() -> None:
    ran = asyncio.Event()
    count = 0

    async def job():
        nonlocal count
        count += 1
        ran.set()

    task = PeriodicTask("job", job, 3600)
    task.start()
    await asyncio.wait_for(ran.wait(), timeout=1)
    assert count == 1

    ran.clear()
    task.trigger()
    await asyncio.wait_for(ran.wait(), timeout=1)
    assert count == 2

    await task.stop()
    assert not task.running
