# ============================================================================
# ENGINE HEALTH CHECKS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Relay binary check
# PURPOSE: Verify the ffmpeg binary is present and runs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Engine Health Checks

Relay engine checks (priority 30):
- FFmpegCheck: Configured binary resolves and answers -version
"""

import asyncio
import shutil
import logging

from core.config import get_defaults
from health.core import HealthCheckPlugin, HealthCheckResult
from health.registry import register_check

logger = logging.getLogger(__name__)


@register_check(category="engine")
class FFmpegCheck(HealthCheckPlugin):
    """Relay binary resolution and version probe."""

    name = "ffmpeg"
    timeout_seconds = 5.0

    async def check(self) -> HealthCheckResult:
        binary = get_defaults().relay.ffmpeg_bin
        path = shutil.which(binary)

        if path is None:
            return HealthCheckResult.unhealthy(
                message=f"Relay binary not found: {binary}",
                ffmpeg_bin=binary,
                hint="Install ffmpeg or set FFMPEG_BIN",
            )

        process = await asyncio.create_subprocess_exec(
            path, "-version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            # Executor timeout; the child must not outlive the check
            if process.returncode is None:
                process.kill()
            await asyncio.shield(process.wait())
            raise

        if process.returncode != 0:
            return HealthCheckResult.unhealthy(
                message=f"Relay binary exited with {process.returncode}",
                path=path,
            )

        lines = stdout.decode("utf-8", errors="replace").splitlines()
        return HealthCheckResult.healthy(
            message="Relay binary available",
            path=path,
            version=lines[0] if lines else None,
        )


__all__ = ["FFmpegCheck"]
