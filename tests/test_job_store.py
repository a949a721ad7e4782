"""Job store tests."""
import asyncio
from datetime import timedelta

import pytest

from shared.errors import InvalidInput, NotFound
from shared.utils import get_utc_now, progress_percentage
from storage.job_store import JobStore
from storage.models import JobState, Outcome, TaskStatus


def assert_counters_consistent(summary):
    assert summary["total_processed"] == (
        summary["total_leaked"] + summary["total_not_leaked"] + summary["total_errors"]
    )


class TestCreate:
    """Tests for JobStore.create."""

    @pytest.mark.asyncio
    async def test_create_starts_pending_with_zero_counters(self, store, task_factory):
        job_id = await store.create(task_factory(4))

        snapshot = await store.get(job_id)
        assert snapshot["state"] == JobState.PENDING
        assert snapshot["total"] == 4
        assert snapshot["summary"] == {
            "total_processed": 0,
            "total_leaked": 0,
            "total_not_leaked": 0,
            "total_errors": 0,
            "completed": False,
            "progress_percentage": 0.0,
        }
        assert [r["status"] for r in snapshot["results"]] == ["pending"] * 4

    @pytest.mark.asyncio
    async def test_create_rejects_empty_batch(self, store):
        with pytest.raises(InvalidInput):
            await store.create([])
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_create_rejects_oversized_batch(self, task_factory):
        store = JobStore(max_batch_size=3)
        with pytest.raises(InvalidInput):
            await store.create(task_factory(4))

        job_id = await store.create(task_factory(3))
        assert (await store.get(job_id))["total"] == 3

    @pytest.mark.asyncio
    async def test_results_hide_passwords(self, store, task_factory):
        job_id = await store.create(task_factory(1))
        snapshot = await store.get(job_id)
        assert snapshot["results"][0]["credential"] == "user0@example.com:••••••••"
        assert "secret0" not in str(snapshot["results"])


class TestGet:

    @pytest.mark.asyncio
    async def test_unknown_job_raises_not_found(self, store):
        with pytest.raises(NotFound):
            await store.get("missing-job")

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        snapshot = await store.get(job_id)
        snapshot["results"][0]["status"] = "checked"
        snapshot["summary"]["total_processed"] = 99

        fresh = await store.get(job_id)
        assert fresh["results"][0]["status"] == "pending"
        assert fresh["summary"]["total_processed"] == 0


class TestClaimAndAdvance:

    @pytest.mark.asyncio
    async def test_first_claim_moves_job_to_processing(self, store, task_factory):
        job_id = await store.create(task_factory(2))

        first = await store.claim(job_id)
        assert first.index == 0
        assert first.username == "user0@example.com"
        assert await store.get_state(job_id) == JobState.PROCESSING

        second = await store.claim(job_id)
        assert second.index == 1
        assert await store.claim(job_id) is None

    @pytest.mark.asyncio
    async def test_advance_increments_exactly_one_counter(self, store, task_factory):
        job_id = await store.create(task_factory(3))
        for _ in range(3):
            await store.claim(job_id)

        assert await store.advance(job_id, 0, Outcome.LEAKED, "found")
        assert await store.advance(job_id, 1, Outcome.NOT_LEAKED)
        assert await store.advance(job_id, 2, Outcome.ERROR, "Error: timeout")

        snapshot = await store.get(job_id)
        summary = snapshot["summary"]
        assert summary["total_leaked"] == 1
        assert summary["total_not_leaked"] == 1
        assert summary["total_errors"] == 1
        assert summary["total_processed"] == 3
        assert summary["progress_percentage"] == 100.0
        assert [r["status"] for r in snapshot["results"]] == ["checked", "checked", "error"]
        assert [r["is_leaked"] for r in snapshot["results"]] == [True, False, None]
        assert snapshot["results"][2]["message"] == "Error: timeout"

    @pytest.mark.asyncio
    async def test_advance_same_task_twice_is_ignored(self, store, task_factory):
        job_id = await store.create(task_factory(2))

        assert await store.advance(job_id, 0, Outcome.LEAKED)
        assert not await store.advance(job_id, 0, Outcome.NOT_LEAKED)

        summary = (await store.get(job_id))["summary"]
        assert summary["total_processed"] == 1
        assert summary["total_leaked"] == 1
        assert summary["total_not_leaked"] == 0

    @pytest.mark.asyncio
    async def test_advance_out_of_range_rejected(self, store, task_factory):
        job_id = await store.create(task_factory(1))
        with pytest.raises(InvalidInput):
            await store.advance(job_id, 5, Outcome.LEAKED)

    @pytest.mark.asyncio
    async def test_concurrent_advances_count_each_task_once(self, store, task_factory):
        job_id = await store.create(task_factory(50))

        outcomes = [Outcome.LEAKED, Outcome.NOT_LEAKED, Outcome.ERROR]
        attempts = [
            store.advance(job_id, index, outcomes[index % 3])
            for index in list(range(50)) * 2
        ]
        results = await asyncio.gather(*attempts)

        assert sum(results) == 50
        summary = (await store.get(job_id))["summary"]
        assert summary["total_processed"] == 50
        assert_counters_consistent(summary)

    @pytest.mark.asyncio
    async def test_concurrent_claims_hand_out_each_index_once(self, store, task_factory):
        job_id = await store.create(task_factory(100))

        claims = await asyncio.gather(*[store.claim(job_id) for _ in range(150)])
        indexes = [c.index for c in claims if c is not None]

        assert sorted(indexes) == list(range(100))


class TestCompletion:

    @pytest.mark.asyncio
    async def test_complete_requires_all_tasks_processed(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        await store.claim(job_id)
        await store.advance(job_id, 0, Outcome.LEAKED)

        assert not await store.complete(job_id)
        assert await store.get_state(job_id) == JobState.PROCESSING

    @pytest.mark.asyncio
    async def test_complete_is_idempotent(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        await store.advance(job_id, 0, Outcome.LEAKED)
        await store.advance(job_id, 1, Outcome.ERROR)

        assert await store.complete(job_id)
        before = await store.get(job_id)
        assert not await store.complete(job_id)
        after = await store.get(job_id)

        assert before["summary"] == after["summary"]
        assert after["summary"]["completed"] is True
        assert after["state"] == JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_terminal_job_accepts_no_more_claims_or_advances(self, store, task_factory):
        job_id = await store.create(task_factory(1))
        await store.advance(job_id, 0, Outcome.LEAKED)
        await store.complete(job_id)

        assert await store.claim(job_id) is None
        assert not await store.fail(job_id, "late failure")
        assert await store.get_state(job_id) == JobState.COMPLETED

    @pytest.mark.asyncio
    async def test_fail_records_error(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        assert await store.fail(job_id, "Error checking batch: boom")

        snapshot = await store.get(job_id)
        assert snapshot["state"] == JobState.FAILED
        assert snapshot["error"] == "Error checking batch: boom"
        assert snapshot["summary"]["completed"] is True


class TestAbandonment:

    @pytest.mark.asyncio
    async def test_idle_job_is_abandoned_and_reports_zero(self, store, task_factory):
        job_id = await store.create(task_factory(3))
        await store.claim(job_id)
        await store.advance(job_id, 0, Outcome.LEAKED)

        abandoned = await store.sweep_abandoned(get_utc_now() + timedelta(seconds=200), idle_threshold=120)

        assert abandoned == [job_id]
        snapshot = await store.get(job_id)
        assert snapshot["state"] == JobState.ABANDONED
        assert snapshot["summary"] == {
            "total_processed": 0,
            "total_leaked": 0,
            "total_not_leaked": 0,
            "total_errors": 0,
            "completed": True,
            "progress_percentage": 0.0,
        }
        assert snapshot["results"] == []

    @pytest.mark.asyncio
    async def test_abandoned_job_ignores_late_results(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        await store.claim(job_id)
        await store.sweep_abandoned(get_utc_now() + timedelta(seconds=10), idle_threshold=1)

        assert not await store.advance(job_id, 0, Outcome.LEAKED)
        assert not await store.complete(job_id)
        assert await store.claim(job_id) is None

    @pytest.mark.asyncio
    async def test_recent_activity_prevents_abandonment(self, store, task_factory):
        job_id = await store.create(task_factory(2))
        await store.advance(job_id, 0, Outcome.LEAKED)

        abandoned = await store.sweep_abandoned(get_utc_now() + timedelta(seconds=30), idle_threshold=120)

        assert abandoned == []
        assert await store.get_state(job_id) == JobState.PENDING

    @pytest.mark.asyncio
    async def test_sweep_skips_terminal_jobs(self, store, task_factory):
        job_id = await store.create(task_factory(1))
        await store.advance(job_id, 0, Outcome.NOT_LEAKED)
        await store.complete(job_id)

        abandoned = await store.sweep_abandoned(get_utc_now() + timedelta(hours=1), idle_threshold=1)

        assert abandoned == []
        assert (await store.get(job_id))["summary"]["total_processed"] == 1


class TestEviction:

    @pytest.mark.asyncio
    async def test_terminal_job_evicted_after_retention(self, task_factory):
        store = JobStore(retention_seconds=60, hard_ttl_seconds=3600)
        job_id = await store.create(task_factory(1))
        await store.advance(job_id, 0, Outcome.LEAKED)
        await store.complete(job_id)

        now = get_utc_now()
        assert not await store.evict(job_id, now + timedelta(seconds=30))
        assert await store.evict(job_id, now + timedelta(seconds=61))

        with pytest.raises(NotFound):
            await store.get(job_id)

    @pytest.mark.asyncio
    async def test_active_job_kept_until_hard_ttl(self, task_factory):
        store = JobStore(retention_seconds=60, hard_ttl_seconds=3600)
        job_id = await store.create(task_factory(1))

        now = get_utc_now()
        assert not await store.evict(job_id, now + timedelta(seconds=120))
        assert await store.evict(job_id, now + timedelta(seconds=3601))

    @pytest.mark.asyncio
    async def test_evict_expired_only_removes_expired(self, task_factory):
        store = JobStore(retention_seconds=60, hard_ttl_seconds=3600)
        done_id = await store.create(task_factory(1))
        await store.advance(done_id, 0, Outcome.LEAKED)
        await store.complete(done_id)
        active_id = await store.create(task_factory(1))

        evicted = await store.evict_expired(get_utc_now() + timedelta(seconds=120))

        assert evicted == [done_id]
        assert (await store.get(active_id))["total"] == 1

    @pytest.mark.asyncio
    async def test_delete_removes_job(self, store, task_factory):
        job_id = await store.create(task_factory(1))
        assert await store.delete(job_id)
        assert not await store.delete(job_id)


class TestWriterRegistration:

    @pytest.mark.asyncio
    async def test_only_one_writer_may_attach(self, store, task_factory):
        job_id = await store.create(task_factory(1))

        assert await store.attach_writer(job_id)
        assert not await store.attach_writer(job_id)

        await store.detach_writer(job_id)
        assert await store.attach_writer(job_id)


def test_progress_percentage_guards_zero_total():
    assert progress_percentage(0, 0) == 0.0
    assert progress_percentage(0, 10) == 0.0
    assert progress_percentage(5, 10) == 50.0
    assert progress_percentage(12, 10) == 100.0
