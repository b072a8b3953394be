# ============================================================================
# INFRASTRUCTURE HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Local storage checks
# PURPOSE: Scratch space for staged sources
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure Health Checks

Local resource checks (priority 20):
- ScratchSpaceCheck: Staging root writable, free space above threshold
"""

import os
import asyncio
import logging

import psutil

from core.config import get_defaults
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)

LOW_DISK_BYTES = 1024 * 1024 * 1024


def _probe_scratch(root: str) -> dict:
    os.makedirs(root, exist_ok=True)
    usage = psutil.disk_usage(root)
    return {
        "writable": os.access(root, os.W_OK),
        "free_bytes": usage.free,
        "total_bytes": usage.total,
        "percent_used": usage.percent,
    }


@register_check(category="infrastructure")
class ScratchSpaceCheck(HealthCheckPlugin):
    """
    Scratch space health check.

    Staged sources land under the staging root; an unwritable root means
    no job can progress past STAGING.
    """

    name = "scratch_space"
    timeout_seconds = 5.0

    async def check(self) -> HealthCheckResult:
        root = get_defaults().staging.scratch_root

        try:
            info = await asyncio.to_thread(_probe_scratch, root)
        except OSError as e:
            return HealthCheckResult.unhealthy(
                message=f"Scratch root unavailable: {e}",
                scratch_root=root,
            )

        if not info["writable"]:
            return HealthCheckResult.unhealthy(
                message="Scratch root not writable",
                scratch_root=root,
                **info,
            )

        if info["free_bytes"] < LOW_DISK_BYTES:
            return HealthCheckResult.degraded(
                message=f"Low scratch space ({info['free_bytes'] // (1024 * 1024)} MiB free)",
                scratch_root=root,
                **info,
            )

        return HealthCheckResult.healthy(
            message="Scratch space available",
            scratch_root=root,
            **info,
        )


__all__ = ["ScratchSpaceCheck"]
