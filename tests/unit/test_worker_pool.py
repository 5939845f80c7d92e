"""Unit tests for the worker pool."""
import asyncio

import pytest

from ensemble.worker_pool import WorkerPool, default_worker_count


@pytest.mark.asyncio
async def test_peak_never_exceeds_size():
    pool = WorkerPool(2)

    async def work():
        await asyncio.sleep(0.02)
        return pool.active

    results = await asyncio.gather(*(pool.run(work) for _ in range(10)))
    assert pool.peak_active == 2
    assert max(results) <= 2
    assert pool.active == 0
    assert pool.available_permits == 2


@pytest.mark.asyncio
async def test_permit_released_on_error():
    pool = WorkerPool(1)

    async def boom():
        raise RuntimeError("fail")

    with pytest.raises(RuntimeError):
        await pool.run(boom)
    assert pool.available_permits == 1

    async def ok():
        return "ok"

    # A leaked permit would block here forever
    assert await asyncio.wait_for(pool.run(ok), timeout=1.0) == "ok"


@pytest.mark.asyncio
async def test_permit_released_on_cancel():
    pool = WorkerPool(1)
    started = asyncio.Event()

    async def slow():
        async with pool.permit():
            started.set()
            await asyncio.sleep(10)

    task = asyncio.create_task(slow())
    await started.wait()
    assert pool.available_permits == 0
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert pool.available_permits == 1


def test_invalid_size():
    with pytest.raises(ValueError):
        WorkerPool(0)


class TestDefaultWorkerCount:
    def test_default_is_three_on_big_machine(self):
        assert default_worker_count("", cpu_count=8) == 3

    def test_env_override(self):
        assert default_worker_count("5", cpu_count=8) == 5

    def test_capped_at_cores_minus_one(self):
        assert default_worker_count("10", cpu_count=4) == 3

    def test_never_below_one(self):
        assert default_worker_count("3", cpu_count=1) == 1
        assert default_worker_count("0", cpu_count=8) == 1

    def test_invalid_value_falls_back(self):
        assert default_worker_count("many", cpu_count=8) == 3
