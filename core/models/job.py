# ============================================================================
# JOB MODEL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core model - Job instance (one relay run)
# PURPOSE: Track one relay run over an ordered list of sources
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: Job, SourceEntry
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Model

A Job represents one end-to-end relay run: an ordered list of sources
pushed one at a time to a single destination.

The Job is owned by its sequencer task. Nothing outside the sequencer
mutates it; everyone else reads JobSnapshot copies from the registry.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, computed_field

from core.contracts import (
    FailureKind,
    JobData,
    JobState,
    SourceOutcome,
    SourceVerdict,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceEntry(BaseModel):
    """
    One URI within a job's source sequence.

    staged_path is only set while a relay attempt for this entry is in
    flight or has just finished; the sequencer clears it before advancing.
    """
    index: int = Field(..., ge=0)
    uri: str = Field(..., max_length=4096)
    verdict: SourceVerdict = Field(default=SourceVerdict.REACHABLE)
    staged_path: Optional[str] = None
    attempt_count: int = Field(default=0, ge=0)
    last_failure: Optional[str] = Field(default=None, max_length=4000)
    last_failure_kind: Optional[FailureKind] = None
    outcome: SourceOutcome = Field(default=SourceOutcome.PENDING)

    def record_failure(self, kind: FailureKind, reason: Optional[str]) -> None:
        """Record the most recent failure for this source."""
        self.last_failure_kind = kind
        self.last_failure = (reason or kind.value)[:4000]


class Job(JobData):
    """
    A relay job - one run over an ordered list of sources.

    Lifecycle:
        1. Created in VALIDATING when a start request arrives
        2. Destination bound, then admitted to the registry
        3. STAGING/RELAYING for each source in order
        4. COMPLETED when the list is exhausted, CANCELLED on request or
           deadline, ABANDONED on a fatal error
    """

    title: Optional[str] = Field(default=None, max_length=256)
    sources: List[SourceEntry] = Field(default_factory=list)

    # Destination (immutable once the job has started)
    destination_uri: Optional[str] = Field(default=None, max_length=2048)
    destination_info: Dict[str, Any] = Field(
        default_factory=dict,
        description="Provisioner info safe to echo back (never the stream key)"
    )

    # Progress
    state: JobState = Field(default=JobState.VALIDATING)
    current_index: int = Field(default=0, ge=0)
    current_attempt: int = Field(default=0, ge=0)
    current_profile: Optional[str] = None
    successes: int = Field(default=0, ge=0)
    last_error: Optional[str] = Field(default=None, max_length=2000)

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=_utcnow)
    deadline: Optional[datetime] = Field(
        default=None,
        description="Optional overall deadline; expiry forces cancellation"
    )

    @classmethod
    def from_sources(
        cls,
        job_id: str,
        uris: List[str],
        title: Optional[str] = None,
        deadline: Optional[datetime] = None,
    ) -> "Job":
        """Build a job from an already-validated, ordered list of URIs."""
        return cls(
            job_id=job_id,
            title=title,
            sources=[SourceEntry(index=i, uri=uri) for i, uri in enumerate(uris)],
            deadline=deadline,
        )

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if job is in a terminal state."""
        return self.state.is_terminal()

    @property
    def abandoned_count(self) -> int:
        return sum(1 for s in self.sources if s.outcome == SourceOutcome.ABANDONED)

    @property
    def current_source(self) -> Optional[SourceEntry]:
        if self.current_index < len(self.sources):
            return self.sources[self.current_index]
        return None

    def can_transition_to(self, new_state: JobState) -> bool:
        """
        Validate if a state transition is allowed.

        Valid transitions:
            VALIDATING -> STAGING, CANCELLING, ABANDONED
            STAGING    -> STAGING, RELAYING, COMPLETED, CANCELLING, ABANDONED
            RELAYING   -> STAGING, RELAYING, COMPLETED, CANCELLING, ABANDONED
            CANCELLING -> CANCELLED, ABANDONED
            COMPLETED, CANCELLED, ABANDONED -> (none, terminal)
        """
        if self.state == new_state and not self.state.is_terminal():
            return True

        working = {
            JobState.STAGING,
            JobState.RELAYING,
            JobState.COMPLETED,
            JobState.CANCELLING,
            JobState.ABANDONED,
        }
        allowed = {
            JobState.VALIDATING: {JobState.STAGING, JobState.CANCELLING, JobState.ABANDONED},
            JobState.STAGING: working,
            JobState.RELAYING: working,
            JobState.CANCELLING: {JobState.CANCELLED, JobState.ABANDONED},
            JobState.COMPLETED: set(),
            JobState.CANCELLED: set(),
            JobState.ABANDONED: set(),
        }

        return new_state in allowed.get(self.state, set())

    def transition(self, new_state: JobState) -> None:
        if not self.can_transition_to(new_state):
            raise ValueError(f"Cannot transition from {self.state.value} to {new_state.value}")
        self.state = new_state
        self.updated_at = _utcnow()

    def bind_destination(self, destination_uri: str, info: Optional[Dict[str, Any]] = None) -> None:
        """Bind the destination. Allowed only before the job starts."""
        if self.started_at is not None:
            raise ValueError("Destination is immutable once the job has started")
        self.destination_uri = destination_uri
        self.destination_info = dict(info or {})

    def mark_started(self) -> None:
        """Mark job as started (sequencer picked it up)."""
        if self.destination_uri is None:
            raise ValueError("Cannot start a job without a destination")
        if self.started_at is None:
            self.started_at = _utcnow()
            self.updated_at = self.started_at

    def advance_to(self, index: int) -> None:
        """Move the source cursor forward. Never moves backwards."""
        if index < self.current_index:
            raise ValueError(f"Source index cannot decrease ({self.current_index} -> {index})")
        if index > len(self.sources):
            raise ValueError(f"Source index {index} exceeds source count {len(self.sources)}")
        self.current_index = index
        self.current_attempt = 0
        self.current_profile = None
        self.updated_at = _utcnow()

    def mark_completed(self) -> None:
        """Mark job as completed (source list exhausted)."""
        self.transition(JobState.COMPLETED)
        self.completed_at = _utcnow()

    def mark_cancelled(self, reason: Optional[str] = None) -> None:
        """Mark job as cancelled. Passes through CANCELLING if needed."""
        if self.state != JobState.CANCELLING:
            self.transition(JobState.CANCELLING)
        self.transition(JobState.CANCELLED)
        if reason:
            self.last_error = reason[:2000]
        self.completed_at = _utcnow()

    def mark_abandoned(self, error_message: str) -> None:
        """Mark job as abandoned after a fatal error."""
        self.transition(JobState.ABANDONED)
        self.last_error = error_message[:2000]  # Truncate if needed
        self.completed_at = _utcnow()


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["Job", "SourceEntry"]
