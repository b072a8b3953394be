# ============================================================================
# RELAY EVENT MODEL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core model - Relay lifecycle events
# PURPOSE: Started/progress/ended/failed signals from relay attempts
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: RelayEvent, RelayEventType
# DEPENDENCIES: pydantic
# ============================================================================
"""
Relay Event Model

Events flow from the relay runner to the sequencer's callback while a
subprocess is running, and are kept in a bounded per-job history in the
registry.

Use cases:
- Watch a live relay's timemark advance
- Find out why the last attempt failed without reading process logs
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from core.contracts import RelayEventType


class RelayEvent(BaseModel):
    """A single lifecycle signal from a relay attempt."""

    job_id: Optional[str] = Field(default=None, max_length=64)
    source_index: Optional[int] = Field(default=None, ge=0)
    attempt: Optional[int] = Field(default=None, ge=1)
    profile: Optional[str] = Field(default=None, max_length=64)

    event_type: RelayEventType
    timemark: Optional[str] = Field(
        default=None,
        max_length=32,
        description="Engine output position, e.g. 00:01:23.40"
    )
    message: Optional[str] = Field(default=None, max_length=2000)
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def started(cls, command: Optional[str] = None, **identity) -> "RelayEvent":
        return cls(event_type=RelayEventType.STARTED, message=command, **identity)

    @classmethod
    def progress(cls, timemark: str, data: Optional[Dict[str, Any]] = None, **identity) -> "RelayEvent":
        return cls(
            event_type=RelayEventType.PROGRESS,
            timemark=timemark,
            data=data or {},
            **identity,
        )

    @classmethod
    def ended(cls, timemark: Optional[str] = None, **identity) -> "RelayEvent":
        return cls(event_type=RelayEventType.ENDED, timemark=timemark, **identity)

    @classmethod
    def failed(cls, diagnostics: Optional[str] = None, **identity) -> "RelayEvent":
        message = diagnostics[-2000:] if diagnostics else None
        return cls(event_type=RelayEventType.FAILED, message=message, **identity)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["RelayEvent", "RelayEventType"]
