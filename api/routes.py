# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for relay job management
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the relay orchestrator, mounted under /api/v1.

Domain errors map to HTTP errors with a {"error": code, "message": ...}
detail body:
    NoValidSources          400
    UnknownProvisioner      400
    NotFound                404
    EndpointProvisionFailed 502
    InternalError           500
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query

from core.errors import (
    EndpointProvisionError,
    JobNotFoundError,
    NoValidSourcesError,
    RelayOrchestratorError,
    UnknownProvisionerError,
)
from core.models import JobSnapshot
from services.source_validator import RejectedSource
from .schemas import (
    CancelRequest,
    CancelResponse,
    ErrorResponse,
    JobCreate,
    JobEventsResponse,
    JobListResponse,
    JobStartResponse,
    JobStatusResponse,
    RejectedSourceResponse,
    RelayEventResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# Set by the main app at startup

_orchestrator = None


def set_orchestrator(orchestrator) -> None:
    """Set orchestrator instance for dependency injection."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator():
    if _orchestrator is None:
        raise HTTPException(500, {"error": "InternalError", "message": "Orchestrator not initialized"})
    return _orchestrator


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

def _rejected(items: List[RejectedSource]) -> List[RejectedSourceResponse]:
    return [RejectedSourceResponse(uri=r.uri, reason=r.reason) for r in items]


def error_detail(exc: RelayOrchestratorError, **extra: Any) -> Dict[str, Any]:
    detail: Dict[str, Any] = {"error": exc.error_code, "message": str(exc)}
    detail.update({k: v for k, v in extra.items() if v is not None})
    return detail


def not_found(exc: JobNotFoundError) -> HTTPException:
    return HTTPException(404, error_detail(exc, job_id=exc.job_id))


async def start_relay_job(
    sources: List[str],
    title: Optional[str] = None,
    destination_hint: Optional[str] = None,
    deadline_seconds: Optional[float] = None,
) -> JobStartResponse:
    """Start a job and translate domain errors. Shared with the legacy routes."""
    orchestrator = get_orchestrator()

    try:
        result = await orchestrator.start_job(
            sources=sources,
            title=title,
            destination_hint=destination_hint,
            deadline_seconds=deadline_seconds,
        )
    except NoValidSourcesError as e:
        raise HTTPException(
            400,
            error_detail(
                e,
                rejected=[{"uri": uri, "reason": reason} for uri, reason in e.rejected],
            ),
        )
    except UnknownProvisionerError as e:
        raise HTTPException(400, error_detail(e))
    except EndpointProvisionError as e:
        logger.error(f"Destination provisioning failed: {e}")
        raise HTTPException(502, error_detail(e))
    except Exception as e:
        logger.exception(f"Error starting job: {e}")
        raise HTTPException(500, {"error": "InternalError", "message": str(e)})

    logger.info(
        f"Started job {result.job.job_id}: "
        f"{len(result.accepted)} accepted, {len(result.rejected)} rejected"
    )

    return JobStartResponse(
        job_id=result.job.job_id,
        state=result.job.state,
        accepted=result.accepted,
        rejected=_rejected(result.rejected),
        destination=result.destination,
    )


def _status(snapshot: JobSnapshot) -> JobStatusResponse:
    return JobStatusResponse.model_validate(snapshot.model_dump())


# ============================================================================
# ORCHESTRATOR STATUS
# ============================================================================

@router.get("/orchestrator/status", tags=["Orchestrator"])
async def get_orchestrator_status():
    """
    Get orchestrator status and statistics.

    Returns:
    - Running state and uptime
    - Active and tracked job counts
    - Terminal job counters
    - Profile ladder and attempt budget
    """
    orchestrator = get_orchestrator()
    return orchestrator.stats


# ============================================================================
# JOBS
# ============================================================================

@router.post(
    "/jobs",
    response_model=JobStartResponse,
    status_code=202,
    tags=["Jobs"],
    responses={
        202: {"description": "Job accepted"},
        400: {"model": ErrorResponse, "description": "No valid sources"},
        502: {"model": ErrorResponse, "description": "Destination provisioning failed"},
    },
)
async def create_job(request: JobCreate):
    """
    Start a relay job.

    Sources are probed before the job exists; unreachable ones are dropped
    and reported in `rejected`. Returns as soon as the job is admitted.
    Poll GET /jobs/{job_id} to monitor progress.
    """
    return await start_relay_job(
        sources=request.sources,
        title=request.title,
        destination_hint=request.destination_hint,
        deadline_seconds=request.deadline_seconds,
    )


@router.post("/jobs/cancel", response_model=CancelResponse, tags=["Jobs"])
async def cancel_jobs(request: Optional[CancelRequest] = None):
    """
    Cancel one job (job_id given) or every active job.
    """
    orchestrator = get_orchestrator()

    if request is None or request.job_id is None:
        return CancelResponse(cancelled=orchestrator.cancel_all())

    try:
        cancelled = orchestrator.cancel_job(request.job_id)
    except JobNotFoundError as e:
        raise not_found(e)
    return CancelResponse(cancelled=int(cancelled))


@router.delete(
    "/jobs/{job_id}",
    response_model=CancelResponse,
    tags=["Jobs"],
    responses={404: {"model": ErrorResponse}},
)
async def cancel_job(job_id: str):
    """Cancel one job. Already-terminal jobs report cancelled=0."""
    orchestrator = get_orchestrator()

    try:
        cancelled = orchestrator.cancel_job(job_id)
    except JobNotFoundError as e:
        raise not_found(e)
    return CancelResponse(cancelled=int(cancelled))


@router.get("/jobs", response_model=JobListResponse, tags=["Jobs"])
async def list_jobs(
    active_only: bool = Query(False, description="Only non-terminal jobs"),
):
    """List tracked jobs (terminal jobs stay listed for the retention period)."""
    orchestrator = get_orchestrator()
    snapshots = orchestrator.list_status(active_only=active_only)
    return JobListResponse(
        jobs=[_status(s) for s in snapshots],
        count=len(snapshots),
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobStatusResponse,
    tags=["Jobs"],
    responses={404: {"model": ErrorResponse}},
)
async def get_job(job_id: str):
    orchestrator = get_orchestrator()
    try:
        return _status(orchestrator.get_status(job_id))
    except JobNotFoundError as e:
        raise not_found(e)


@router.get(
    "/jobs/{job_id}/events",
    response_model=JobEventsResponse,
    tags=["Jobs"],
    responses={404: {"model": ErrorResponse}},
)
async def get_job_events(job_id: str):
    """Recent relay events (started, progress, ended, failed) for a job."""
    orchestrator = get_orchestrator()
    try:
        events = orchestrator.events(job_id)
    except JobNotFoundError as e:
        raise not_found(e)

    return JobEventsResponse(
        job_id=job_id,
        events=[RelayEventResponse.model_validate(e.model_dump()) for e in events],
        count=len(events),
    )
