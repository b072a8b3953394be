# ============================================================================
# LEGACY WORKER ROUTES
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Compatibility - Root-level routes of the single-process worker
# PURPOSE: Keep /start-stream, /stop-all and /status working for old clients
# CREATED: 19 OCT 2026
# ============================================================================
"""
Legacy Worker Routes

Thin aliases over the /api/v1 job routes, in the shapes older clients
expect:

    GET  /              - service banner
    POST /start-stream  - {videoUrl | sources, title} -> {id, message, ...}
    POST /stop-all      - {stopped: n}
    GET  /status        - {running: [{id, broadcastId, startedAt, videoUrl}]}
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from .routes import get_orchestrator, start_relay_job
from .schemas import StartStreamRequest

compat_router = APIRouter(tags=["Legacy"])


@compat_router.get("/", response_class=PlainTextResponse)
async def banner():
    return "Live Relay Worker Running"


@compat_router.post("/start-stream", status_code=202)
async def start_stream(request: StartStreamRequest):
    response = await start_relay_job(
        sources=request.source_list(),
        title=request.title,
    )
    return {
        "id": response.job_id,
        "broadcast": response.destination,
        "accepted": response.accepted,
        "rejected": [r.model_dump(mode="json") for r in response.rejected],
        "message": "started",
    }


@compat_router.post("/stop-all")
async def stop_all():
    return {"stopped": get_orchestrator().cancel_all()}


@compat_router.get("/status")
async def legacy_status():
    running = []
    for snapshot in get_orchestrator().list_status(active_only=True):
        running.append({
            "id": snapshot.job_id,
            "broadcastId": snapshot.destination.get("broadcast_id"),
            "startedAt": snapshot.started_at.isoformat() if snapshot.started_at else None,
            "videoUrl": snapshot.current_source_uri,
            "state": snapshot.state.value,
        })
    return {"running": running}


__all__ = ["compat_router"]
