# ============================================================================
# FALLBACK POLICY
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Service - Retry/abandon decisions per source
# PURPOSE: Pick the next relay profile after a failed attempt, or give up
# CREATED: 19 OCT 2026
# ============================================================================
"""
Fallback Policy

Pure decision logic, no I/O. Given a source's attempt history and the
attempt that just ended, answer RETRY (with which profile) or ABANDON.

Rules:
- First attempt always uses the ladder's primary profile
- Failures walk the ladder: attempt N uses ladder[N-1]
- attempt_count reaching the attempt budget abandons the source
- Sizes and invalid sources are not retried; a re-encode cannot fix them
- Decisions key on FailureKind only, never on diagnostic text
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from core.contracts import AttemptOutcome, FallbackAction, FailureKind
from core.models import ProfileLadder, RelayAttempt, RelayProfile, SourceEntry

logger = logging.getLogger(__name__)


NON_RETRYABLE = frozenset({
    FailureKind.STAGING_TOO_LARGE,
    FailureKind.INVALID_SOURCE,
})


@dataclass(frozen=True)
class FallbackDecision:
    action: FallbackAction
    profile: Optional[RelayProfile] = None

    @classmethod
    def retry(cls, profile: RelayProfile) -> "FallbackDecision":
        return cls(FallbackAction.RETRY, profile)

    @classmethod
    def abandon(cls) -> "FallbackDecision":
        return cls(FallbackAction.ABANDON)


def load_ladder(path: Union[str, Path]) -> ProfileLadder:
    """
    Load a profile ladder from a YAML file.

    Raises:
        FileNotFoundError, yaml.YAMLError, pydantic.ValidationError
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    ladder = ProfileLadder.model_validate(data)
    logger.info(
        f"Loaded profile ladder from {path}: "
        f"{[p.name for p in ladder.profiles]} (budget={ladder.attempt_budget})"
    )
    return ladder


class FallbackPolicy:
    """Walk a profile ladder until the per-source attempt budget is spent."""

    def __init__(self, ladder: Optional[ProfileLadder] = None, max_attempts: Optional[int] = None):
        self.ladder = ladder or ProfileLadder.default()
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        # Operator cap (RELAY_MAX_ATTEMPTS) on top of the ladder's own budget
        self.max_attempts = max_attempts

    @classmethod
    def from_file(cls, path: Optional[str], max_attempts: Optional[int] = None) -> "FallbackPolicy":
        if not path:
            return cls(max_attempts=max_attempts)
        return cls(load_ladder(path), max_attempts=max_attempts)

    @property
    def attempt_budget(self) -> int:
        if self.max_attempts is None:
            return self.ladder.attempt_budget
        return min(self.max_attempts, self.ladder.attempt_budget)

    def initial_profile(self) -> RelayProfile:
        return self.ladder.profiles[0]

    def ordinal_of(self, profile: RelayProfile) -> int:
        return self.ladder.ordinal_of(profile)

    def next(self, entry: SourceEntry, attempt: RelayAttempt) -> FallbackDecision:
        """
        Decide what to do after a failed attempt.

        Args:
            entry: Source whose attempt_count already includes this attempt
            attempt: The attempt that just ended

        Raises:
            ValueError: attempt did not fail (succeeded, cancelled or pending)
        """
        if attempt.outcome not in (AttemptOutcome.FAILED, AttemptOutcome.TIMED_OUT):
            raise ValueError(
                f"Fallback only applies to failed attempts, got {attempt.outcome.value}"
            )

        if attempt.failure_kind in NON_RETRYABLE:
            logger.info(
                f"Source {entry.index}: {attempt.failure_kind.value} is not retryable"
            )
            return FallbackDecision.abandon()

        if entry.attempt_count >= self.attempt_budget:
            logger.info(
                f"Source {entry.index}: attempt budget exhausted "
                f"({entry.attempt_count}/{self.attempt_budget})"
            )
            return FallbackDecision.abandon()

        profile = self.ladder.profiles[entry.attempt_count]
        logger.info(
            f"Source {entry.index}: retrying with profile {profile.name} "
            f"(attempt {entry.attempt_count + 1}/{self.attempt_budget})"
        )
        return FallbackDecision.retry(profile)


__all__ = [
    "FallbackDecision",
    "FallbackPolicy",
    "load_ladder",
    "NON_RETRYABLE",
]
