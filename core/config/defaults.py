# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for relaying, staging, validation, jobs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the relay pipeline.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
import tempfile
from dataclasses import dataclass, field
from typing import Optional


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


@dataclass(frozen=True)
class RelayDefaults:
    """
    Defaults for relay attempts.

    Controls the engine binary, per-attempt timeout, interrupt grace
    period and diagnostic retention.
    """
    ffmpeg_bin: str = "ffmpeg"

    # Per-attempt timeout (seconds); None = unbounded
    attempt_timeout_seconds: Optional[float] = None

    # Interrupt -> kill escalation
    grace_period_seconds: float = 5.0

    # Bounded diagnostics (characters of stderr tail kept)
    diagnostics_limit: int = 4000

    # Minimum seconds between forwarded progress events
    progress_interval_seconds: float = 5.0

    # Fallback ladder
    profiles_file: Optional[str] = None
    max_attempts_per_source: int = 2

    @classmethod
    def from_env(cls) -> "RelayDefaults":
        """Create from environment variables."""
        timeout = _env_float("RELAY_ATTEMPT_TIMEOUT_SEC", 0.0)
        if not timeout:
            # Millisecond runtime cap used by older deployments
            legacy_ms = _env_int("FFMPEG_MAX_RUNTIME_MS", 0)
            timeout = legacy_ms / 1000.0 if legacy_ms > 0 else 0.0

        return cls(
            ffmpeg_bin=os.getenv("FFMPEG_BIN", "ffmpeg"),
            attempt_timeout_seconds=timeout or None,
            grace_period_seconds=_env_float("RELAY_GRACE_PERIOD_SEC", 5.0),
            diagnostics_limit=_env_int("RELAY_DIAGNOSTICS_LIMIT", 4000),
            progress_interval_seconds=_env_float("RELAY_PROGRESS_INTERVAL_SEC", 5.0),
            profiles_file=os.getenv("RELAY_PROFILES_FILE") or None,
            max_attempts_per_source=_env_int("RELAY_MAX_ATTEMPTS", 2),
        )


@dataclass(frozen=True)
class StagingDefaults:
    """
    Defaults for staging (local working copies of sources).
    """
    scratch_root: str = field(
        default_factory=lambda: os.path.join(tempfile.gettempdir(), "relay-staging")
    )
    download_timeout_seconds: float = 30.0
    max_bytes: int = 2 * 1024 * 1024 * 1024  # 2 GiB, 0 = unlimited
    chunk_size: int = 1024 * 1024

    @classmethod
    def from_env(cls) -> "StagingDefaults":
        """Create from environment variables."""
        return cls(
            scratch_root=os.getenv(
                "STAGING_ROOT",
                os.path.join(tempfile.gettempdir(), "relay-staging"),
            ),
            download_timeout_seconds=_env_float("STAGING_TIMEOUT_SEC", 30.0),
            max_bytes=_env_int("STAGING_MAX_BYTES", 2 * 1024 * 1024 * 1024),
            chunk_size=_env_int("STAGING_CHUNK_SIZE", 1024 * 1024),
        )


@dataclass(frozen=True)
class ValidationDefaults:
    """
    Defaults for source accessibility probing.

    Probe timeout is clamped to 5-10 seconds.
    """
    probe_timeout_seconds: float = 8.0
    concurrency: int = 8

    MIN_PROBE_TIMEOUT = 5.0
    MAX_PROBE_TIMEOUT = 10.0

    @classmethod
    def from_env(cls) -> "ValidationDefaults":
        """Create from environment variables."""
        timeout = _env_float("PROBE_TIMEOUT_SEC", 8.0)
        timeout = max(cls.MIN_PROBE_TIMEOUT, min(cls.MAX_PROBE_TIMEOUT, timeout))
        return cls(
            probe_timeout_seconds=timeout,
            concurrency=max(1, _env_int("VALIDATION_CONCURRENCY", 8)),
        )


@dataclass(frozen=True)
class JobDefaults:
    """
    Defaults for job lifecycle and registry retention.
    """
    # Terminal jobs stay readable for this long before removal
    retention_seconds: float = 300.0
    reaper_interval_seconds: float = 30.0

    # Optional overall deadline applied when a request does not set one
    default_deadline_seconds: Optional[float] = None

    # How long shutdown waits for job tasks to finish cancelling
    shutdown_timeout_seconds: float = 15.0

    # Relay events kept per job
    event_history: int = 200

    @classmethod
    def from_env(cls) -> "JobDefaults":
        """Create from environment variables."""
        deadline = _env_float("JOB_DEFAULT_DEADLINE_SEC", 0.0)
        return cls(
            retention_seconds=_env_float("JOB_RETENTION_SEC", 300.0),
            reaper_interval_seconds=_env_float("JOB_REAPER_INTERVAL_SEC", 30.0),
            default_deadline_seconds=deadline or None,
            shutdown_timeout_seconds=_env_float("JOB_SHUTDOWN_TIMEOUT_SEC", 15.0),
            event_history=_env_int("JOB_EVENT_HISTORY", 200),
        )


@dataclass(frozen=True)
class ProvisionerDefaults:
    """
    Defaults for destination provisioning.

    static  - fixed RTMP URL (RELAY_RTMP_URL / YOUTUBE_RTMP_URL)
    youtube - create and bind a YouTube live broadcast per job
    """
    default_provisioner: str = "static"
    static_rtmp_url: Optional[str] = None

    # YouTube Data API
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    youtube_refresh_token: Optional[str] = None
    token_uri: str = "https://oauth2.googleapis.com/token"
    privacy_status: str = "public"
    ingestion_format: str = "1080p"
    fallback_ingestion_address: str = "rtmp://a.rtmp.youtube.com/live2"
    scheduled_lead_seconds: int = 5
    scheduled_duration_seconds: int = 2 * 60 * 60

    @property
    def youtube_configured(self) -> bool:
        return bool(
            self.google_client_id
            and self.google_client_secret
            and self.youtube_refresh_token
        )

    @classmethod
    def from_env(cls) -> "ProvisionerDefaults":
        """Create from environment variables."""
        return cls(
            default_provisioner=os.getenv("DESTINATION_PROVISIONER", "static"),
            static_rtmp_url=(
                os.getenv("RELAY_RTMP_URL") or os.getenv("YOUTUBE_RTMP_URL") or None
            ),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            youtube_refresh_token=os.getenv("YOUTUBE_REFRESH_TOKEN") or None,
            privacy_status=os.getenv("YOUTUBE_PRIVACY_STATUS", "public"),
            ingestion_format=os.getenv("YOUTUBE_INGESTION_FORMAT", "1080p"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    relay: RelayDefaults = field(default_factory=RelayDefaults)
    staging: StagingDefaults = field(default_factory=StagingDefaults)
    validation: ValidationDefaults = field(default_factory=ValidationDefaults)
    jobs: JobDefaults = field(default_factory=JobDefaults)
    provisioners: ProvisionerDefaults = field(default_factory=ProvisionerDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            relay=RelayDefaults.from_env(),
            staging=StagingDefaults.from_env(),
            validation=ValidationDefaults.from_env(),
            jobs=JobDefaults.from_env(),
            provisioners=ProvisionerDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

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
