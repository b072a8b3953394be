# ============================================================================
# MODEL TESTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tests - Job, attempt, profile and snapshot models
# PURPOSE: Verify state transitions and model invariants
# CREATED: 19 OCT 2026
# ============================================================================
"""
Model Tests

Covers:
1. Job state machine (allowed and refused transitions)
2. Source cursor only moves forward
3. Destination binding is frozen once the job starts
4. Attempt outcomes are set exactly once
5. Profile ladder validation and attempt budget
6. Snapshots never leak the destination URI

Run with:
    pytest tests/test_models.py -v
"""

import pytest
from pydantic import ValidationError

from core.contracts import AttemptOutcome, FailureKind, JobState, RelayEventType
from core.models import (
    Job,
    JobSnapshot,
    ProfileLadder,
    RelayAttempt,
    RelayEvent,
    RelayProfile,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def job():
    job = Job.from_sources(
        "job-001",
        ["https://cdn.example/a.mp4", "https://cdn.example/b.mp4"],
        title="Evening",
    )
    job.bind_destination("rtmp://live.example/app/secret-key", {"provisioner": "static"})
    return job


# ============================================================================
# JOB STATE MACHINE
# ============================================================================

class TestJobTransitions:
    """Job lifecycle transitions."""

    def test_new_job_is_validating(self, job):
        assert job.state == JobState.VALIDATING
        assert job.current_index == 0
        assert [s.index for s in job.sources] == [0, 1]

    def test_happy_path(self, job):
        job.transition(JobState.STAGING)
        job.transition(JobState.RELAYING)
        job.transition(JobState.STAGING)
        job.transition(JobState.RELAYING)
        job.mark_completed()
        assert job.state == JobState.COMPLETED
        assert job.is_terminal
        assert job.completed_at is not None

    def test_cannot_complete_from_validating(self, job):
        with pytest.raises(ValueError, match="Cannot transition"):
            job.mark_completed()

    def test_terminal_states_are_final(self, job):
        job.transition(JobState.STAGING)
        job.mark_abandoned("boom")
        for state in JobState:
            assert not job.can_transition_to(state)

    def test_cancel_passes_through_cancelling(self, job):
        job.transition(JobState.STAGING)
        job.mark_cancelled("requested")
        assert job.state == JobState.CANCELLED
        assert job.last_error == "requested"

    def test_cancelling_only_leads_to_cancelled_or_abandoned(self, job):
        job.transition(JobState.CANCELLING)
        assert not job.can_transition_to(JobState.STAGING)
        assert not job.can_transition_to(JobState.COMPLETED)
        assert job.can_transition_to(JobState.CANCELLED)
        assert job.can_transition_to(JobState.ABANDONED)

    def test_abandoned_message_truncated(self, job):
        job.mark_abandoned("x" * 5000)
        assert len(job.last_error) == 2000


class TestSourceCursor:
    """current_index never decreases."""

    def test_advance_forward(self, job):
        job.current_attempt = 2
        job.current_profile = "degraded-1"
        job.advance_to(1)
        assert job.current_index == 1
        assert job.current_attempt == 0
        assert job.current_profile is None

    def test_advance_to_end(self, job):
        job.advance_to(2)
        assert job.current_source is None

    def test_cannot_move_backwards(self, job):
        job.advance_to(1)
        with pytest.raises(ValueError, match="cannot decrease"):
            job.advance_to(0)

    def test_cannot_pass_end(self, job):
        with pytest.raises(ValueError, match="exceeds"):
            job.advance_to(3)


class TestDestinationBinding:
    """Destination immutability."""

    def test_rebind_before_start(self, job):
        job.bind_destination("rtmp://other/key")
        assert job.destination_uri == "rtmp://other/key"
        assert job.destination_info == {}

    def test_rebind_after_start_refused(self, job):
        job.mark_started()
        with pytest.raises(ValueError, match="immutable"):
            job.bind_destination("rtmp://other/key")

    def test_start_requires_destination(self):
        job = Job.from_sources("job-002", ["https://cdn.example/a.mp4"])
        with pytest.raises(ValueError, match="without a destination"):
            job.mark_started()

    def test_mark_started_idempotent(self, job):
        job.mark_started()
        first = job.started_at
        job.mark_started()
        assert job.started_at == first


# ============================================================================
# ATTEMPTS
# ============================================================================

class TestRelayAttempt:
    """Attempt outcome is terminal once set."""

    def test_finish_sets_outcome(self):
        attempt = RelayAttempt(profile_name="primary")
        attempt.finish(AttemptOutcome.FAILED, FailureKind.ENGINE_ERROR, "tail", exit_code=1)
        assert attempt.outcome == AttemptOutcome.FAILED
        assert attempt.failure_kind == FailureKind.ENGINE_ERROR
        assert attempt.exit_code == 1
        assert attempt.duration_seconds is not None

    def test_finish_twice_refused(self):
        attempt = RelayAttempt(profile_name="primary")
        attempt.finish(AttemptOutcome.SUCCEEDED)
        with pytest.raises(ValueError, match="already set"):
            attempt.finish(AttemptOutcome.FAILED)
        assert attempt.succeeded

    def test_finish_requires_terminal_outcome(self):
        attempt = RelayAttempt(profile_name="primary")
        with pytest.raises(ValueError, match="terminal"):
            attempt.finish(AttemptOutcome.PENDING)

    def test_staging_failure_never_ran(self):
        attempt = RelayAttempt.staging_failure(
            job_id="job-001",
            source_index=0,
            attempt_number=1,
            profile_name="primary",
            profile_ordinal=0,
            failure_kind=FailureKind.STAGING_TIMEOUT,
            message="download timed out",
        )
        assert attempt.outcome == AttemptOutcome.FAILED
        assert attempt.failure_kind == FailureKind.STAGING_TIMEOUT
        assert attempt.exit_code is None


# ============================================================================
# PROFILES
# ============================================================================

class TestProfileLadder:

    def test_default_ladder(self):
        ladder = ProfileLadder.default()
        assert [p.name for p in ladder.profiles] == ["primary", "degraded-1"]
        assert not ladder.profiles[0].reencodes
        assert ladder.profiles[1].reencodes
        assert ladder.attempt_budget == 2

    def test_budget_bounded_by_ladder_length(self):
        ladder = ProfileLadder(profiles=[RelayProfile(name="only")], max_attempts=5)
        assert ladder.attempt_budget == 1

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError):
            ProfileLadder(profiles=[RelayProfile(name="a"), RelayProfile(name="a")])

    def test_empty_ladder_rejected(self):
        with pytest.raises(ValidationError):
            ProfileLadder(profiles=[])

    def test_profiles_are_frozen(self):
        profile = RelayProfile(name="primary")
        with pytest.raises(ValidationError):
            profile.video_codec = "libx264"


# ============================================================================
# SNAPSHOTS AND EVENTS
# ============================================================================

class TestSnapshot:

    def test_snapshot_fields(self, job):
        job.transition(JobState.STAGING)
        job.current_attempt = 1
        job.current_profile = "primary"
        snap = JobSnapshot.from_job(job)
        assert snap.state == JobState.STAGING
        assert snap.source_count == 2
        assert snap.current_source_uri == "https://cdn.example/a.mp4"
        assert snap.current_profile == "primary"

    def test_snapshot_hides_destination_uri(self, job):
        snap = JobSnapshot.from_job(job)
        assert "secret-key" not in snap.model_dump_json()
        assert snap.destination == {"provisioner": "static"}

    def test_snapshot_is_a_copy(self, job):
        snap = JobSnapshot.from_job(job)
        job.advance_to(1)
        assert snap.current_source_index == 0


class TestRelayEvent:

    def test_failed_event_truncates_diagnostics(self):
        event = RelayEvent.failed("e" * 3000, job_id="job-001", attempt=1)
        assert event.event_type == RelayEventType.FAILED
        assert len(event.message) == 2000

    def test_progress_event(self):
        event = RelayEvent.progress("00:00:05.00", {"fps": "30"}, source_index=1)
        assert event.timemark == "00:00:05.00"
        assert event.data == {"fps": "30"}
        assert event.source_index == 1
