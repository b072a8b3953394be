# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Health check plugin system
# PURPOSE: Kubernetes probes and relay readiness monitoring
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Module

Plugin-based health check system for the relay orchestrator:
- /livez: Process alive (instant, for Kubernetes liveness probe)
- /readyz: Ready to accept relay jobs
- /health: Every check, with per-category summary

Usage:
    from health import health_router
    import health.checks  # registers the built-in checks

    app.include_router(health_router)
"""

from health.core import (
    HealthStatus,
    HealthCheckResult,
    HealthCheckPlugin,
    HealthCheckCategory,
)
from health.registry import (
    HealthCheckRegistry,
    register_check,
    get_registry,
)
from health.executor import HealthCheckExecutor
from health.router import health_router

__all__ = [
    # Core types
    "HealthStatus",
    "HealthCheckResult",
    "HealthCheckPlugin",
    "HealthCheckCategory",
    # Registry
    "HealthCheckRegistry",
    "register_check",
    "get_registry",
    # Executor
    "HealthCheckExecutor",
    # Router
    "health_router",
]
