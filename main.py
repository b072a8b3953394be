# ============================================================================
# LIVE RELAY ORCHESTRATOR - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - FastAPI application entry point
# PURPOSE: Main application with relay orchestrator lifecycle
# CREATED: 19 OCT 2026
# ============================================================================
"""
Live Relay Orchestrator Main Application

FastAPI application that:
1. Provides HTTP API for relay job management
2. Runs the relay orchestrator (job tasks + reaper) in the background
3. Exposes health probes for the relay binary and scratch space

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from __version__ import __version__, BUILD_DATE, EPOCH
from orchestrator import RelayOrchestrator
from api import router, compat_router, set_orchestrator as set_api_orchestrator

# Health check system
from health import health_router, get_registry
from health.checks.application import set_orchestrator

# Configure logging using our structured logging system
from core.logging import ComponentType, configure_logging, get_logger

configure_logging(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
)
logger = get_logger(__name__, ComponentType.ORCHESTRATOR)

# Global instance
_orchestrator: RelayOrchestrator = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts the orchestrator on startup; on shutdown, stops it, which
    cancels running jobs, reaps their processes and clears scratch space.
    """
    global _orchestrator

    logger.info(f"Starting Live Relay Orchestrator v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    _orchestrator = RelayOrchestrator()
    set_api_orchestrator(_orchestrator)

    await _orchestrator.start()
    logger.info("Orchestrator started")

    # Initialize health checks
    set_orchestrator(_orchestrator)
    import health.checks  # noqa: F401  Register all health check plugins
    logger.info(f"Health checks initialized ({len(get_registry())} checks registered)")

    yield

    logger.info("Shutting down Live Relay Orchestrator...")
    await _orchestrator.stop()
    logger.info("Live Relay Orchestrator stopped")


# Create FastAPI app
app = FastAPI(
    title="Live Relay Orchestrator",
    description=f"Epoch {EPOCH} live stream relay with source fallback",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include health check routes (no prefix - /livez, /readyz, /health)
app.include_router(health_router)

# Include API routes
app.include_router(router, prefix="/api/v1")

# Include root-level worker routes (/, /start-stream, /stop-all, /status)
app.include_router(compat_router)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
