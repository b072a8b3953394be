# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Job admission, sequencing and registry
# PURPOSE: Coordinate relay jobs from start request to terminal state
# CREATED: 19 OCT 2026
# ============================================================================
"""
Orchestrator Module

    service   - RelayOrchestrator facade used by the HTTP layer
    sequencer - JobSequencer, the per-job state machine
    registry  - JobRegistry, the shared job table

Usage:
    from orchestrator import RelayOrchestrator

    orchestrator = RelayOrchestrator()
    await orchestrator.start()
    result = await orchestrator.start_job(["https://example.com/a.mp4"])
"""

from .registry import JobRegistry
from .sequencer import JobSequencer
from .service import RelayOrchestrator, StartResult

__all__ = [
    "JobRegistry",
    "JobSequencer",
    "RelayOrchestrator",
    "StartResult",
]
