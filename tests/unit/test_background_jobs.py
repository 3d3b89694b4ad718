"""Tests for the supervised background job runner."""

import asyncio

import pytest

from squadcheck.checkins.background import BackgroundJobs, get_background_jobs


class TestBackgroundJobs:
    @pytest.mark.asyncio
    async def test_drain_waits_for_jobs(self) -> None:
        jobs = BackgroundJobs()
        done: list[str] = []

        async def work(name: str) -> None:
            await asyncio.sleep(0)
            done.append(name)

        jobs.spawn("a", work("a"))
        jobs.spawn("b", work("b"))
        assert jobs.pending == 2
        await jobs.drain()
        assert sorted(done) == ["a", "b"]
        assert jobs.pending == 0

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self) -> None:
        jobs = BackgroundJobs()

        async def boom() -> None:
            raise RuntimeError("nope")

        jobs.spawn("boom", boom())
        await jobs.drain()
        assert len(jobs.failures) == 1
        assert jobs.failures[0].name == "boom"
        assert isinstance(jobs.failures[0].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_drain_covers_nested_spawns(self) -> None:
        jobs = BackgroundJobs()
        done: list[str] = []

        async def child() -> None:
            done.append("child")

        async def parent() -> None:
            jobs.spawn("child", child())

        jobs.spawn("parent", parent())
        await jobs.drain()
        assert done == ["child"]

    @pytest.mark.asyncio
    async def test_cancel_all(self) -> None:
        jobs = BackgroundJobs()

        async def forever() -> None:
            await asyncio.sleep(3600)

        jobs.spawn("forever", forever())
        await jobs.cancel_all()
        await asyncio.sleep(0)
        assert jobs.pending == 0
        assert jobs.failures == []

    def test_process_wide_runner_is_shared(self) -> None:
        assert get_background_jobs() is get_background_jobs()
