# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Foundation - Core enums and base contracts
# PURPOSE: Define state/outcome enums and base data contracts for relay jobs
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: JobState, SourceVerdict, SourceOutcome, AttemptOutcome,
#          FailureKind, RelayEventType, FallbackAction, JobData
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the relay orchestration system.

These define the minimal identity fields and status vocabularies that cross
boundaries:
- HTTP (FastAPI request/response)
- Registry (status snapshots)
- Python (sequencer, runner, fallback policy)

Boundary-specific models inherit from these contracts.
"""

from enum import Enum
from pydantic import BaseModel, Field


# ============================================================================
# STATUS ENUMS
# ============================================================================

class JobState(str, Enum):
    """
    Job lifecycle states.

    State transitions:
        VALIDATING -> STAGING <-> RELAYING -> COMPLETED
                                           -> ABANDONED (fatal error)
        any non-terminal -> CANCELLING -> CANCELLED
    """
    VALIDATING = "validating"    # Start request received, sources being probed
    STAGING = "staging"          # Downloading the current source
    RELAYING = "relaying"        # Relay subprocess running for the current source
    CANCELLING = "cancelling"    # Cancel observed, tearing down
    COMPLETED = "completed"      # Source list exhausted (possibly zero successes)
    CANCELLED = "cancelled"      # Cancelled by request or deadline
    ABANDONED = "abandoned"      # Fatal error, job aborted

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (JobState.COMPLETED, JobState.CANCELLED, JobState.ABANDONED)


class SourceVerdict(str, Enum):
    """Reachability verdict from the Source List Validator."""
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed"


class SourceOutcome(str, Enum):
    """Final disposition of one source within a job."""
    PENDING = "pending"
    RELAYED = "relayed"
    ABANDONED = "abandoned"


class AttemptOutcome(str, Enum):
    """
    Relay attempt outcome.

    PENDING is the only non-terminal value; once set to anything else
    the attempt outcome never changes.
    """
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        return self != AttemptOutcome.PENDING


class FailureKind(str, Enum):
    """
    Structured failure codes.

    The fallback policy keys its decisions on these, never on the
    engine's diagnostic text.
    """
    ENGINE_ERROR = "engine_error"              # Relay process exited non-zero
    TIMEOUT = "timeout"                        # Per-attempt timeout elapsed
    STAGING_TIMEOUT = "staging_timeout"        # Download exceeded its timeout
    STAGING_TOO_LARGE = "staging_too_large"    # Download exceeded max bytes
    STAGING_FAILED = "staging_failed"          # Transport error while downloading
    INVALID_SOURCE = "invalid_source"          # Source rejected as unusable
    ENGINE_UNAVAILABLE = "engine_unavailable"  # Relay binary could not start
    SCRATCH_UNAVAILABLE = "scratch_unavailable"
    INTERNAL = "internal"


class RelayEventType(str, Enum):
    """Lifecycle signals emitted by a relay attempt."""
    STARTED = "started"
    PROGRESS = "progress"
    ENDED = "ended"
    FAILED = "failed"


class FallbackAction(str, Enum):
    """Decision returned by the fallback policy."""
    RETRY = "retry"
    ABANDON = "abandon"


# ============================================================================
# BASE DATA CONTRACTS
# ============================================================================

class JobData(BaseModel):
    """
    Essential job identity - the minimum fields that define a job.

    All job-related models should include these fields.
    """
    job_id: str = Field(..., max_length=64, description="Opaque unique job identifier")

    model_config = {"frozen": False}
