# ============================================================================
# CORE MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core module initialization
# PURPOSE: Export core contracts, models and errors
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import (
    JobState,
    SourceVerdict,
    SourceOutcome,
    AttemptOutcome,
    FailureKind,
    RelayEventType,
    FallbackAction,
)
from core.models import (
    Job,
    SourceEntry,
    JobSnapshot,
    RelayAttempt,
    RelayProfile,
    ProfileLadder,
    RelayEvent,
)

__all__ = [
    # Enums
    "JobState",
    "SourceVerdict",
    "SourceOutcome",
    "AttemptOutcome",
    "FailureKind",
    "RelayEventType",
    "FallbackAction",
    # Models
    "Job",
    "SourceEntry",
    "JobSnapshot",
    "RelayAttempt",
    "RelayProfile",
    "ProfileLadder",
    "RelayEvent",
]
