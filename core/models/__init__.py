# ============================================================================
# MODELS MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the relay orchestration system.

    - Job / SourceEntry: mutable, owned by the job's sequencer task
    - JobSnapshot: frozen read model handed to status callers
    - RelayAttempt: one engine invocation and its terminal outcome
    - RelayProfile / ProfileLadder: codec/quality configurations
    - RelayEvent: lifecycle signals from a running attempt
"""

from core.models.job import Job, SourceEntry
from core.models.snapshot import JobSnapshot
from core.models.attempt import RelayAttempt
from core.models.profile import RelayProfile, ProfileLadder
from core.models.events import RelayEvent, RelayEventType

__all__ = [
    # Job
    "Job",
    "SourceEntry",
    "JobSnapshot",
    # Attempt
    "RelayAttempt",
    # Profiles
    "RelayProfile",
    "ProfileLadder",
    # Events
    "RelayEvent",
    "RelayEventType",
]
