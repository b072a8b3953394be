# ============================================================================
# JOB REGISTRY TESTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tests - Shared job table
# PURPOSE: Verify admission, cancellation, events and retention
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Registry Tests

Run with:
    pytest tests/test_registry.py -v
"""

import asyncio
from datetime import timedelta

import pytest

from core.errors import JobNotFoundError
from core.models import Job, RelayEvent
from orchestrator.registry import JobRegistry


def _job(job_id="job-001"):
    job = Job.from_sources(job_id, ["https://cdn.example/a.mp4"])
    job.bind_destination("rtmp://live.example/app/key")
    return job


class TestAdmission:

    def test_create_and_get(self):
        registry = JobRegistry()
        registry.create(_job(), asyncio.Event())
        assert registry.get("job-001").job_id == "job-001"
        assert len(registry) == 1

    def test_duplicate_id_refused(self):
        registry = JobRegistry()
        registry.create(_job(), asyncio.Event())
        with pytest.raises(ValueError, match="already registered"):
            registry.create(_job(), asyncio.Event())

    def test_unknown_job(self):
        registry = JobRegistry()
        with pytest.raises(JobNotFoundError) as exc_info:
            registry.get("nope")
        assert exc_info.value.job_id == "nope"

    def test_publish_replaces_snapshot(self):
        registry = JobRegistry()
        job = _job()
        registry.create(job, asyncio.Event())
        job.advance_to(1)
        registry.publish(job)
        assert registry.get("job-001").current_source_index == 1

    def test_publish_after_purge_is_ignored(self):
        registry = JobRegistry(retention_seconds=0)
        job = _job()
        registry.create(job, asyncio.Event())
        job.mark_abandoned("boom")
        registry.publish(job)
        registry.purge_expired()
        registry.publish(job)
        assert len(registry) == 0


class TestCancellation:

    def test_cancel_sets_event_once(self):
        registry = JobRegistry()
        event = asyncio.Event()
        registry.create(_job(), event)

        assert registry.cancel("job-001") is True
        assert event.is_set()
        assert registry.cancel("job-001") is False

    def test_cancel_unknown_raises(self):
        with pytest.raises(JobNotFoundError):
            JobRegistry().cancel("nope")

    def test_cancel_terminal_is_noop(self):
        registry = JobRegistry()
        job = _job()
        event = asyncio.Event()
        registry.create(job, event)
        job.mark_abandoned("boom")
        registry.publish(job)

        assert registry.cancel("job-001") is False
        assert not event.is_set()

    def test_cancel_all_skips_terminal(self):
        registry = JobRegistry()
        live_events = []
        for i in range(3):
            event = asyncio.Event()
            live_events.append(event)
            registry.create(_job(f"job-{i}"), event)

        done = _job("job-done")
        registry.create(done, asyncio.Event())
        done.mark_abandoned("boom")
        registry.publish(done)

        assert registry.cancel_all() == 3
        assert all(e.is_set() for e in live_events)
        assert registry.cancel_all() == 0


class TestListingAndEvents:

    def test_list_active(self):
        registry = JobRegistry()
        registry.create(_job("job-1"), asyncio.Event())
        done = _job("job-2")
        registry.create(done, asyncio.Event())
        done.mark_abandoned("boom")
        registry.publish(done)

        assert [s.job_id for s in registry.list_active()] == ["job-1"]
        assert {s.job_id for s in registry.list_all()} == {"job-1", "job-2"}

    def test_event_history_bounded(self):
        registry = JobRegistry(event_history=3)
        registry.create(_job(), asyncio.Event())
        for i in range(5):
            registry.record_event(RelayEvent.progress(f"00:00:0{i}.00", job_id="job-001"))

        marks = [e.timemark for e in registry.events("job-001")]
        assert marks == ["00:00:02.00", "00:00:03.00", "00:00:04.00"]

    def test_events_for_unknown_jobs_dropped(self):
        registry = JobRegistry()
        registry.record_event(RelayEvent.progress("00:00:01.00", job_id="ghost"))
        registry.record_event(RelayEvent.progress("00:00:01.00"))
        with pytest.raises(JobNotFoundError):
            registry.events("ghost")


class TestRetention:

    def test_purge_only_expired_terminal_jobs(self):
        registry = JobRegistry(retention_seconds=60)
        registry.create(_job("job-live"), asyncio.Event())
        done = _job("job-done")
        registry.create(done, asyncio.Event())
        done.mark_abandoned("boom")
        registry.publish(done)

        assert registry.purge_expired() == 0

        later = done.completed_at + timedelta(seconds=120)
        assert registry.purge_expired(now=later) == 1
        assert [s.job_id for s in registry.list_all()] == ["job-live"]
        with pytest.raises(JobNotFoundError):
            registry.get("job-done")
