# ============================================================================
# STARTUP HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Startup health checks
# PURPOSE: Basic process and configuration checks
# CREATED: 19 OCT 2026
# ============================================================================
"""
Startup Health Checks

Basic checks that run first (priority 10):
- ProcessCheck: Always healthy if process is running
- ConfigCheck: Destination provisioner has what it needs
"""

import os
import sys
import platform
import logging

from core.config import get_defaults
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


@register_check(category="startup")
class ProcessCheck(HealthCheckPlugin):
    """
    Basic process health check.

    Always returns healthy if the check runs (proves process is alive).
    """

    name = "process"
    timeout_seconds = 1.0

    async def check(self) -> HealthCheckResult:
        return HealthCheckResult.healthy(
            message="Process running",
            python_version=sys.version,
            platform=platform.platform(),
            pid=os.getpid(),
        )


@register_check(category="startup")
class ConfigCheck(HealthCheckPlugin):
    """
    Configuration health check.

    The default provisioner decides which settings are required:
    static needs a destination URL, youtube needs OAuth credentials.
    Presence only; values are not exercised here.
    """

    name = "config"
    timeout_seconds = 1.0

    async def check(self) -> HealthCheckResult:
        from services.provisioners import list_provisioners

        config = get_defaults().provisioners
        mode = config.default_provisioner

        if mode not in list_provisioners():
            return HealthCheckResult.unhealthy(
                message=f"Unknown destination provisioner: {mode}",
                provisioner=mode,
                available=list_provisioners(),
            )

        if mode == "static" and not config.static_rtmp_url:
            return HealthCheckResult.unhealthy(
                message="Missing required config: RELAY_RTMP_URL",
                provisioner=mode,
                hint="Set RELAY_RTMP_URL (or YOUTUBE_RTMP_URL)",
            )

        if mode == "youtube" and not config.youtube_configured:
            missing = [
                var for var, value in (
                    ("GOOGLE_CLIENT_ID", config.google_client_id),
                    ("GOOGLE_CLIENT_SECRET", config.google_client_secret),
                    ("YOUTUBE_REFRESH_TOKEN", config.youtube_refresh_token),
                ) if not value
            ]
            return HealthCheckResult.unhealthy(
                message=f"Missing required config: {', '.join(missing)}",
                provisioner=mode,
                missing=missing,
            )

        relay = get_defaults().relay
        if relay.profiles_file and not os.path.isfile(relay.profiles_file):
            return HealthCheckResult.degraded(
                message=f"Profile ladder file not found: {relay.profiles_file}",
                provisioner=mode,
            )

        return HealthCheckResult.healthy(
            message="All required config present",
            provisioner=mode,
            profiles_file=relay.profiles_file,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ProcessCheck",
    "ConfigCheck",
]
