# ============================================================================
# JOB SNAPSHOT MODEL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core model - Read-only job status
# PURPOSE: Immutable status view published by the sequencer
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: JobSnapshot
# DEPENDENCIES: pydantic
# ============================================================================
"""
Job Snapshot

The registry never hands out live Job objects. The sequencer publishes a
frozen JobSnapshot after every transition and status queries read those.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from core.contracts import JobState
from core.models.job import Job


class JobSnapshot(BaseModel):
    """Immutable status view of a job."""
    job_id: str
    state: JobState
    current_source_index: int = Field(..., ge=0)
    source_count: int = Field(..., ge=0)
    current_attempt: int = 0
    current_profile: Optional[str] = None
    current_source_uri: Optional[str] = None
    successes: int = 0
    abandoned: int = 0
    title: Optional[str] = None
    destination: Dict[str, Any] = Field(default_factory=dict)
    last_error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_terminal: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_job(cls, job: Job) -> "JobSnapshot":
        return cls(
            job_id=job.job_id,
            state=job.state,
            current_source_index=job.current_index,
            source_count=len(job.sources),
            current_attempt=job.current_attempt,
            current_profile=job.current_profile,
            current_source_uri=job.current_source.uri if job.current_source else None,
            successes=job.successes,
            abandoned=job.abandoned_count,
            title=job.title,
            destination=dict(job.destination_info),
            last_error=job.last_error,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            is_terminal=job.state.is_terminal(),
        )


__all__ = ["JobSnapshot"]
