# ============================================================================
# FALLBACK POLICY TESTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tests - Profile ladder walking
# PURPOSE: Verify retry/abandon decisions and YAML ladder loading
# CREATED: 19 OCT 2026
# ============================================================================
"""
Fallback Policy Tests

Run with:
    pytest tests/test_fallback.py -v
"""

import pytest
import yaml
from pydantic import ValidationError

from core.contracts import AttemptOutcome, FailureKind, FallbackAction
from core.models import ProfileLadder, RelayAttempt, RelayProfile, SourceEntry
from services.fallback import FallbackPolicy, load_ladder


# ============================================================================
# HELPERS
# ============================================================================

def _failed(kind=FailureKind.ENGINE_ERROR, outcome=AttemptOutcome.FAILED):
    attempt = RelayAttempt(profile_name="primary")
    return attempt.finish(outcome, failure_kind=kind)


def _entry(attempt_count):
    return SourceEntry(index=0, uri="https://cdn.example/a.mp4", attempt_count=attempt_count)


@pytest.fixture
def three_step_policy():
    return FallbackPolicy(ProfileLadder(
        max_attempts=3,
        profiles=[
            RelayProfile(name="primary"),
            RelayProfile(name="degraded-1", video_codec="libx264", max_height=720),
            RelayProfile(name="degraded-2", video_codec="libx264", max_height=480),
        ],
    ))


# ============================================================================
# DECISIONS
# ============================================================================

class TestFallbackDecisions:

    def test_initial_profile_is_primary(self):
        assert FallbackPolicy().initial_profile().name == "primary"

    def test_first_failure_retries_degraded(self):
        decision = FallbackPolicy().next(_entry(1), _failed())
        assert decision.action == FallbackAction.RETRY
        assert decision.profile.name == "degraded-1"

    def test_budget_exhausted_abandons(self):
        decision = FallbackPolicy().next(_entry(2), _failed())
        assert decision.action == FallbackAction.ABANDON
        assert decision.profile is None

    def test_timeout_is_retried(self):
        decision = FallbackPolicy().next(
            _entry(1), _failed(FailureKind.TIMEOUT, AttemptOutcome.TIMED_OUT)
        )
        assert decision.action == FallbackAction.RETRY

    def test_staging_failures_are_retried(self):
        for kind in (FailureKind.STAGING_TIMEOUT, FailureKind.STAGING_FAILED):
            decision = FallbackPolicy().next(_entry(1), _failed(kind))
            assert decision.action == FallbackAction.RETRY

    def test_too_large_is_not_retried(self):
        decision = FallbackPolicy().next(_entry(1), _failed(FailureKind.STAGING_TOO_LARGE))
        assert decision.action == FallbackAction.ABANDON

    def test_invalid_source_is_not_retried(self):
        decision = FallbackPolicy().next(_entry(1), _failed(FailureKind.INVALID_SOURCE))
        assert decision.action == FallbackAction.ABANDON

    def test_walks_full_ladder(self, three_step_policy):
        names = []
        for count in (1, 2):
            decision = three_step_policy.next(_entry(count), _failed())
            names.append(decision.profile.name)
        assert names == ["degraded-1", "degraded-2"]
        assert three_step_policy.next(_entry(3), _failed()).action == FallbackAction.ABANDON

    def test_success_is_not_a_fallback_input(self):
        attempt = RelayAttempt(profile_name="primary").finish(AttemptOutcome.SUCCEEDED)
        with pytest.raises(ValueError, match="failed attempts"):
            FallbackPolicy().next(_entry(1), attempt)

    def test_cancelled_is_not_a_fallback_input(self):
        attempt = RelayAttempt(profile_name="primary").finish(AttemptOutcome.CANCELLED)
        with pytest.raises(ValueError):
            FallbackPolicy().next(_entry(1), attempt)

    def test_diagnostic_text_is_ignored(self):
        attempt = RelayAttempt(profile_name="primary").finish(
            AttemptOutcome.FAILED,
            failure_kind=FailureKind.ENGINE_ERROR,
            diagnostics="file too large, invalid source",
        )
        assert FallbackPolicy().next(_entry(1), attempt).action == FallbackAction.RETRY


# ============================================================================
# YAML LADDERS
# ============================================================================

class TestLadderLoading:

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text(yaml.safe_dump({
            "max_attempts": 3,
            "profiles": [
                {"name": "primary", "video_codec": "copy"},
                {"name": "safe", "video_codec": "libx264", "max_height": 480, "threads": 1},
            ],
        }))

        policy = FallbackPolicy.from_file(str(path))
        assert [p.name for p in policy.ladder.profiles] == ["primary", "safe"]
        assert policy.attempt_budget == 2
        assert policy.ladder.profiles[1].threads == 1

    def test_no_path_uses_default(self):
        assert FallbackPolicy.from_file(None).ladder == ProfileLadder.default()

    def test_invalid_yaml_ladder(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text("profiles: []\n")
        with pytest.raises(ValidationError):
            load_ladder(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_ladder(tmp_path / "missing.yaml")


# ============================================================================
# OPERATOR CAP
# ============================================================================

class TestAttemptCap:

    def test_cap_below_ladder_budget(self, three_step_policy):
        policy = FallbackPolicy(three_step_policy.ladder, max_attempts=1)
        assert policy.attempt_budget == 1
        assert policy.next(_entry(1), _failed()).action == FallbackAction.ABANDON

    def test_cap_above_ladder_budget_changes_nothing(self, three_step_policy):
        policy = FallbackPolicy(three_step_policy.ladder, max_attempts=10)
        assert policy.attempt_budget == 3

    def test_cap_must_be_positive(self):
        with pytest.raises(ValueError, match="at least 1"):
            FallbackPolicy(max_attempts=0)

    def test_from_file_passes_cap(self):
        assert FallbackPolicy.from_file(None, max_attempts=1).attempt_budget == 1
