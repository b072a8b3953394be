# ============================================================================
# API SCHEMAS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator

from core.contracts import JobState, RelayEventType, SourceVerdict


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class JobCreate(BaseModel):
    """Request to start a relay job."""
    sources: List[str] = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Ordered source URIs; duplicates are relayed twice"
    )
    title: Optional[str] = Field(None, max_length=256)
    destination_hint: Optional[str] = Field(
        None,
        max_length=64,
        description="Provisioner name (static, youtube); default from config"
    )
    deadline_seconds: Optional[float] = Field(
        None,
        gt=0,
        description="Overall job deadline; expiry cancels the job"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "sources": [
                        "https://media.example.com/intro.mp4",
                        "https://media.example.com/main.mp4",
                    ],
                    "title": "Evening stream",
                }
            ]
        }
    }


class CancelRequest(BaseModel):
    """Cancel one job, or every job when job_id is omitted."""
    job_id: Optional[str] = Field(None, max_length=64)


class StartStreamRequest(BaseModel):
    """Legacy start request: a single videoUrl or a list of sources."""
    videoUrl: Optional[str] = Field(None, max_length=4096)
    sources: Optional[List[str]] = None
    title: Optional[str] = Field(None, max_length=256)

    @model_validator(mode="after")
    def _needs_source(self) -> "StartStreamRequest":
        if not self.videoUrl and not self.sources:
            raise ValueError("videoUrl or sources is required")
        return self

    def source_list(self) -> List[str]:
        if self.sources:
            return list(self.sources)
        return [self.videoUrl]


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class RejectedSourceResponse(BaseModel):
    uri: str
    reason: SourceVerdict


class JobStatusResponse(BaseModel):
    """Job snapshot as returned to callers."""
    job_id: str
    state: JobState
    current_source_index: int
    source_count: int
    current_attempt: int = 0
    current_profile: Optional[str] = None
    current_source_uri: Optional[str] = None
    successes: int = 0
    abandoned: int = 0
    title: Optional[str] = None
    destination: Dict[str, Any] = {}
    last_error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    is_terminal: bool = False

    model_config = {"from_attributes": True}


class JobStartResponse(BaseModel):
    """Accepted start request."""
    job_id: str
    state: JobState
    accepted: List[str]
    rejected: List[RejectedSourceResponse] = []
    destination: Dict[str, Any] = {}


class JobListResponse(BaseModel):
    """List of jobs response."""
    jobs: List[JobStatusResponse]
    count: int


class CancelResponse(BaseModel):
    cancelled: int


class RelayEventResponse(BaseModel):
    job_id: Optional[str] = None
    source_index: Optional[int] = None
    attempt: Optional[int] = None
    profile: Optional[str] = None
    event_type: RelayEventType
    timemark: Optional[str] = None
    message: Optional[str] = None
    data: Dict[str, Any] = {}
    timestamp: datetime

    model_config = {"from_attributes": True}


class JobEventsResponse(BaseModel):
    job_id: str
    events: List[RelayEventResponse]
    count: int


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    message: Optional[str] = None
    job_id: Optional[str] = None
    rejected: Optional[List[RejectedSourceResponse]] = None
