# ============================================================================
# APPLICATION HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Application state checks
# PURPOSE: Orchestrator availability and retention reaper liveness
# CREATED: 19 OCT 2026
# ============================================================================
"""
Application Health Checks (priority 40)

- OrchestratorCheck: orchestrator started, reaper still sweeping
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)

# Sweeps missed before the reaper counts as stalled
REAPER_STALL_FACTOR = 3

# Set by main.py once the orchestrator has started
_orchestrator = None


def set_orchestrator(orchestrator) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def _reaper_lag(stats: Dict[str, Any]) -> Optional[float]:
    last = stats.get("last_reap_at")
    if not last:
        return None
    return (datetime.now(timezone.utc) - datetime.fromisoformat(last)).total_seconds()


@register_check(category="application", timeout_seconds=2.0)
class OrchestratorCheck(HealthCheckPlugin):
    """
    Unhealthy when no orchestrator is running. Degraded when the retention
    reaper has stopped sweeping, since finished jobs then pile up in memory.
    """

    name = "orchestrator"

    async def check(self) -> HealthCheckResult:
        if _orchestrator is None:
            return HealthCheckResult.unhealthy("Orchestrator not initialized")
        if not _orchestrator.is_running:
            return HealthCheckResult.unhealthy("Orchestrator not running")

        stats = _orchestrator.stats
        details = {
            key: stats.get(key)
            for key in (
                "uptime_seconds",
                "active_jobs",
                "tracked_jobs",
                "jobs_started",
                "jobs_abandoned",
                "attempt_budget",
            )
        }

        lag = _reaper_lag(stats)
        interval = stats.get("reaper_interval_seconds")
        if lag is not None and interval and lag > interval * REAPER_STALL_FACTOR:
            return HealthCheckResult.degraded(
                f"Retention reaper idle for {lag:.0f}s",
                reaper_lag_seconds=round(lag, 1),
                **details,
            )

        return HealthCheckResult.healthy(
            f"Orchestrator running ({details['active_jobs'] or 0} active jobs)",
            **details,
        )


__all__ = [
    "OrchestratorCheck",
    "set_orchestrator",
]
