# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Base classes for health checks
# PURPOSE: Health check plugin interface and result types
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Core Types

A relay node is only useful if it can stage a source and run the relay
binary, so the checks are tiered by what they gate:

    startup (10)        process alive, destination config present
    infrastructure (20) scratch space writable with room to stage
    engine (30)         relay binary resolves and runs
    application (40)    orchestrator running

Status is worst-wins: healthy < degraded < unhealthy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY.index(self)

    @classmethod
    def aggregate(cls, statuses: Iterable["HealthStatus"]) -> "HealthStatus":
        return max(statuses, key=_SEVERITY.index, default=cls.HEALTHY)


_SEVERITY = (HealthStatus.HEALTHY, HealthStatus.DEGRADED, HealthStatus.UNHEALTHY)


class HealthCheckCategory(str, Enum):
    STARTUP = "startup"
    INFRASTRUCTURE = "infrastructure"
    ENGINE = "engine"
    APPLICATION = "application"

    @property
    def default_priority(self) -> int:
        return _PRIORITIES[self]


_PRIORITIES = {
    HealthCheckCategory.STARTUP: 10,
    HealthCheckCategory.INFRASTRUCTURE: 20,
    HealthCheckCategory.ENGINE: 30,
    HealthCheckCategory.APPLICATION: 40,
}


@dataclass
class HealthCheckResult:
    """Outcome of one check. duration_ms is filled in by the executor."""
    status: HealthStatus
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def healthy(cls, message: Optional[str] = None, **details) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, message, details)

    @classmethod
    def degraded(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.DEGRADED, message, details)

    @classmethod
    def unhealthy(cls, message: str, **details) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, message, details)

    @classmethod
    def from_exception(cls, exc: Exception) -> "HealthCheckResult":
        return cls.unhealthy(str(exc), exception_type=type(exc).__name__)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.message:
            body["message"] = self.message
        if self.details:
            body["details"] = self.details
        return body


@dataclass
class AggregatedHealthResult:
    status: HealthStatus
    checks: Dict[str, HealthCheckResult]
    total_duration_ms: float
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": {name: r.to_dict() for name, r in self.checks.items()},
            "total_duration_ms": round(self.total_duration_ms, 2),
            "checked_at": self.checked_at.isoformat(),
        }


class HealthCheckPlugin(ABC):
    """
    Base class for health check plugins.

    Subclasses set `name` and implement `check()`. `required_for_ready`
    checks gate /readyz; the rest only show up in /health.

    Example:
        @register_check(category="engine")
        class FFmpegCheck(HealthCheckPlugin):
            name = "ffmpeg"

            async def check(self) -> HealthCheckResult:
                if shutil.which("ffmpeg"):
                    return HealthCheckResult.healthy()
                return HealthCheckResult.unhealthy("ffmpeg not found")
    """

    name: str = "unnamed"
    category: HealthCheckCategory = HealthCheckCategory.APPLICATION
    priority: int = 50
    timeout_seconds: float = 10.0
    required_for_ready: bool = True

    @abstractmethod
    async def check(self) -> HealthCheckResult:
        ...


__all__ = [
    "HealthStatus",
    "HealthCheckCategory",
    "HealthCheckResult",
    "AggregatedHealthResult",
    "HealthCheckPlugin",
]
