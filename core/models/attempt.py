# ============================================================================
# RELAY ATTEMPT MODEL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core model - One relay subprocess invocation
# PURPOSE: Record profile, timing and terminal outcome of an attempt
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: RelayAttempt
# DEPENDENCIES: pydantic
# ============================================================================
"""
Relay Attempt Model

One invocation of the relay engine for one source at one profile.
The subprocess handle itself lives in the runner; this record only holds
what callers and the fallback policy need.

Outcome transitions are terminal: once finish() has been called the
outcome never changes.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

from core.contracts import AttemptOutcome, FailureKind


class RelayAttempt(BaseModel):
    """One relay attempt and its terminal outcome."""
    job_id: Optional[str] = Field(default=None, max_length=64)
    source_index: int = Field(default=0, ge=0)
    attempt_number: int = Field(default=1, ge=1, description="1-based attempt count for the source")
    profile_name: str = Field(..., max_length=64)
    profile_ordinal: int = Field(default=0, ge=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    outcome: AttemptOutcome = Field(default=AttemptOutcome.PENDING)
    failure_kind: Optional[FailureKind] = None
    diagnostics: Optional[str] = None
    exit_code: Optional[int] = None
    last_timemark: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == AttemptOutcome.SUCCEEDED

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def finish(
        self,
        outcome: AttemptOutcome,
        failure_kind: Optional[FailureKind] = None,
        diagnostics: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> "RelayAttempt":
        """Set the terminal outcome. Raises if already finished."""
        if self.outcome.is_terminal():
            raise ValueError(
                f"Attempt outcome already set to {self.outcome.value}"
            )
        if not outcome.is_terminal():
            raise ValueError("finish() requires a terminal outcome")

        self.outcome = outcome
        self.failure_kind = failure_kind
        self.diagnostics = diagnostics
        self.exit_code = exit_code
        self.finished_at = datetime.now(timezone.utc)
        return self

    @classmethod
    def staging_failure(
        cls,
        job_id: str,
        source_index: int,
        attempt_number: int,
        profile_name: str,
        profile_ordinal: int,
        failure_kind: FailureKind,
        message: str,
    ) -> "RelayAttempt":
        """Attempt that failed before the relay engine was ever started."""
        attempt = cls(
            job_id=job_id,
            source_index=source_index,
            attempt_number=attempt_number,
            profile_name=profile_name,
            profile_ordinal=profile_ordinal,
        )
        return attempt.finish(
            AttemptOutcome.FAILED,
            failure_kind=failure_kind,
            diagnostics=message,
        )


__all__ = ["RelayAttempt"]
