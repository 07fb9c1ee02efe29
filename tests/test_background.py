import asyncio

import pytest

from leadcapture.services.background import BackgroundTaskRegistry


@pytest.mark.asyncio
async def test_drain_waits_for_pending_tasks():
    registry = BackgroundTaskRegistry()
    done = []

    async def work():
        await asyncio.sleep(0.01)
        done.append(True)

    registry.spawn(work(), name="work")
    assert len(registry) == 1

    await registry.drain(timeout=1.0)

    assert done == [True]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_failed_task_is_discarded():
    registry = BackgroundTaskRegistry()

    async def boom():
        raise RuntimeError("provider down")

    task = registry.spawn(boom(), name="boom")
    await asyncio.gather(task, return_exceptions=True)
    await asyncio.sleep(0)

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_drain_cancels_tasks_past_the_grace_period():
    registry = BackgroundTaskRegistry()

    async def slow():
        await asyncio.sleep(10)

    task = registry.spawn(slow(), name="slow")
    await registry.drain(timeout=0.01)

    assert task.cancelled()
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_drain_with_nothing_pending():
    await BackgroundTaskRegistry().drain(timeout=0.01)
