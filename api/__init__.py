# ============================================================================
# API MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for relay job management
# CREATED: 19 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the relay orchestrator.

    router        - /api/v1 job and orchestrator routes
    compat_router - root-level legacy worker routes
"""

from .routes import router, set_orchestrator
from .compat_routes import compat_router
from .schemas import (
    JobCreate,
    JobStartResponse,
    JobStatusResponse,
    CancelRequest,
)

__all__ = [
    "router",
    "compat_router",
    "set_orchestrator",
    "JobCreate",
    "JobStartResponse",
    "JobStatusResponse",
    "CancelRequest",
]
