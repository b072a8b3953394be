# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Foundation - Domain exceptions
# PURPOSE: Input, provisioning, staging, fatal and lookup errors
# CREATED: 19 OCT 2026
# ============================================================================
"""
Error Taxonomy

Input errors are raised before a job exists. Staging errors are per-source
and are routed through the fallback policy by the sequencer. Fatal errors
abort the whole job (cleanup runs, job ends ABANDONED).

Each error that can end a relay attempt carries a FailureKind so the
policy can decide without inspecting message text.
"""

from typing import List, Optional, Tuple

from core.contracts import FailureKind


class RelayOrchestratorError(Exception):
    """Base exception for all orchestrator errors."""

    error_code = "InternalError"
    failure_kind = FailureKind.INTERNAL


# ============================================================================
# INPUT ERRORS
# ============================================================================

class NoValidSourcesError(RelayOrchestratorError):
    """Raised when validation leaves no reachable sources."""

    error_code = "NoValidSources"
    failure_kind = FailureKind.INVALID_SOURCE

    def __init__(self, rejected: Optional[List[Tuple[str, str]]] = None):
        self.rejected = rejected or []
        super().__init__(
            f"No valid sources ({len(self.rejected)} rejected)"
        )


class InvalidSourceError(RelayOrchestratorError):
    """Raised when a single source URI is unusable."""

    error_code = "InvalidSource"
    failure_kind = FailureKind.INVALID_SOURCE

    def __init__(self, uri: str, reason: str):
        self.uri = uri
        self.reason = reason
        super().__init__(f"Invalid source {uri!r}: {reason}")


# ============================================================================
# PROVISIONING ERRORS
# ============================================================================

class EndpointProvisionError(RelayOrchestratorError):
    """Raised when the destination platform rejects a provisioning request."""

    error_code = "EndpointProvisionFailed"

    def __init__(self, provisioner: str, message: str):
        self.provisioner = provisioner
        super().__init__(f"{provisioner}: {message}")


class UnknownProvisionerError(RelayOrchestratorError):
    """Raised when a destination hint names no registered provisioner."""

    error_code = "UnknownProvisioner"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provisioner not found: {name}")


# ============================================================================
# STAGING ERRORS (per-source, routed to the fallback policy)
# ============================================================================

class StagingError(RelayOrchestratorError):
    """Base class for download failures of a single source."""

    error_code = "StagingFailed"
    failure_kind = FailureKind.STAGING_FAILED


class StagingTimeoutError(StagingError):
    error_code = "StagingTimeout"
    failure_kind = FailureKind.STAGING_TIMEOUT


class StagingTooLargeError(StagingError):
    error_code = "StagingTooLarge"
    failure_kind = FailureKind.STAGING_TOO_LARGE

    def __init__(self, uri: str, limit_bytes: int, observed_bytes: Optional[int] = None):
        self.uri = uri
        self.limit_bytes = limit_bytes
        self.observed_bytes = observed_bytes
        detail = f"{observed_bytes} bytes" if observed_bytes is not None else "unknown size"
        super().__init__(f"Source exceeds {limit_bytes} bytes ({detail}): {uri}")


class StagingFailedError(StagingError):
    pass


# ============================================================================
# FATAL ERRORS (abort the job)
# ============================================================================

class FatalJobError(RelayOrchestratorError):
    """Error that aborts the entire job."""

    error_code = "FatalJobError"


class ScratchUnavailableError(FatalJobError):
    failure_kind = FailureKind.SCRATCH_UNAVAILABLE


class EngineUnavailableError(FatalJobError):
    failure_kind = FailureKind.ENGINE_UNAVAILABLE


# ============================================================================
# LOOKUP ERRORS
# ============================================================================

class JobNotFoundError(RelayOrchestratorError):
    """Raised for unknown or expired job ids."""

    error_code = "NotFound"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


__all__ = [
    "RelayOrchestratorError",
    "NoValidSourcesError",
    "InvalidSourceError",
    "EndpointProvisionError",
    "UnknownProvisionerError",
    "StagingError",
    "StagingTimeoutError",
    "StagingTooLargeError",
    "StagingFailedError",
    "FatalJobError",
    "ScratchUnavailableError",
    "EngineUnavailableError",
    "JobNotFoundError",
]
