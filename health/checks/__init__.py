# ============================================================================
# HEALTH CHECK PLUGINS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Health check implementations
# PURPOSE: Specific health checks for relay orchestrator components
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Plugins

Startup Checks (priority 10):
- process: Basic process health (always healthy if running)
- config: Destination provisioner settings present

Infrastructure Checks (priority 20):
- scratch_space: Staging root writable with free space

Engine Checks (priority 30):
- ffmpeg: Relay binary resolves and runs

Application Checks (priority 40):
- orchestrator: Orchestrator running

Import this module to register all checks:
    import health.checks
"""

# Import all check modules to trigger registration
from health.checks.startup import ProcessCheck, ConfigCheck
from health.checks.infrastructure import ScratchSpaceCheck
from health.checks.engine import FFmpegCheck
from health.checks.application import OrchestratorCheck, set_orchestrator

__all__ = [
    # Startup
    "ProcessCheck",
    "ConfigCheck",
    # Infrastructure
    "ScratchSpaceCheck",
    # Engine
    "FFmpegCheck",
    # Application
    "OrchestratorCheck",
    "set_orchestrator",
]
