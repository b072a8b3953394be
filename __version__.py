# ============================================================================
# VERSION - LIVE RELAY ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# ============================================================================
"""
Version information for the Live Relay Orchestrator.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch.build
# Criteria for 0.2 - degraded-profile fallback and cancellation complete
__version__ = "0.2.0.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Build metadata
BUILD_DATE = "2026-10-19"

EPOCH = 1
CODENAME = "Live Relay"
