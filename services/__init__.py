# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Per-source collaborators of the sequencer
# PURPOSE: Validation, staging, provisioning and fallback decisions
# CREATED: 19 OCT 2026
# ============================================================================
"""
Services Module

Everything the Job Sequencer delegates to, apart from the relay runner.

Usage:
    from services import SourceListValidator, HttpSourceProber

    validator = SourceListValidator(HttpSourceProber())
    report = await validator.validate(["https://example.com/a.mp4"])
"""

from .prober import SourceProber, HttpSourceProber
from .source_validator import SourceListValidator, ValidationReport, RejectedSource
from .staging import StagingManager, HttpSourceFetcher, SourceFetcher
from .fallback import FallbackPolicy, FallbackDecision, load_ladder
from .provisioners import (
    EndpointProvisioner,
    ProvisionedEndpoint,
    create_provisioner,
    list_provisioners,
    register_provisioner,
)

__all__ = [
    "SourceProber",
    "HttpSourceProber",
    "SourceListValidator",
    "ValidationReport",
    "RejectedSource",
    "StagingManager",
    "HttpSourceFetcher",
    "SourceFetcher",
    "FallbackPolicy",
    "FallbackDecision",
    "load_ladder",
    "EndpointProvisioner",
    "ProvisionedEndpoint",
    "create_provisioner",
    "list_provisioners",
    "register_provisioner",
]
