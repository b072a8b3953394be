# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the relay orchestrator.
"""

from core.config.defaults import (
    RelayDefaults,
    StagingDefaults,
    ValidationDefaults,
    JobDefaults,
    ProvisionerDefaults,
    Defaults,
    get_defaults,
    reset_defaults,
)

__all__ = [
    "RelayDefaults",
    "StagingDefaults",
    "ValidationDefaults",
    "JobDefaults",
    "ProvisionerDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
