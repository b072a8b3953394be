# ============================================================================
# HEALTH CHECK REGISTRY
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Health check plugin registration
# PURPOSE: Register and discover health check plugins
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Registry

Built-in checks register themselves at import time:

    @register_check(category="engine")
    class FFmpegCheck(HealthCheckPlugin):
        ...

Tests build a private registry instead of touching the global one:

    registry = HealthCheckRegistry()
    registry.register(FFmpegCheck())
"""

import logging
from typing import Dict, List, Optional, Type, Union

from health.core import HealthCheckCategory, HealthCheckPlugin

logger = logging.getLogger(__name__)


class HealthCheckRegistry:
    """Check instances keyed by name."""

    def __init__(self):
        self._checks: Dict[str, HealthCheckPlugin] = {}

    def register(self, check: HealthCheckPlugin) -> None:
        replaced = check.name in self._checks
        self._checks[check.name] = check
        if replaced:
            logger.warning(f"Replaced health check: {check.name}")
        else:
            logger.debug(f"Health check {check.name}: {check.category.value}/{check.priority}")

    def unregister(self, name: str) -> bool:
        return self._checks.pop(name, None) is not None

    def get(self, name: str) -> Optional[HealthCheckPlugin]:
        return self._checks.get(name)

    def category_of(self, name: str) -> Optional[HealthCheckCategory]:
        check = self._checks.get(name)
        return check.category if check is not None else None

    def get_checks_by_priority(self) -> List[HealthCheckPlugin]:
        return sorted(self._checks.values(), key=lambda c: (c.priority, c.name))

    def get_required_checks(self) -> List[HealthCheckPlugin]:
        """Checks that gate /readyz."""
        return [c for c in self.get_checks_by_priority() if c.required_for_ready]

    def clear(self) -> None:
        self._checks.clear()

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks


# ============================================================================
# GLOBAL REGISTRY & DECORATOR
# ============================================================================

_registry: Optional[HealthCheckRegistry] = None


def get_registry() -> HealthCheckRegistry:
    global _registry
    if _registry is None:
        _registry = HealthCheckRegistry()
    return _registry


def register_check(
    category: Union[str, HealthCheckCategory, None] = None,
    priority: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    required_for_ready: Optional[bool] = None,
):
    """
    Class decorator: apply overrides, instantiate, register globally.

    Priority defaults to the category's tier.
    """
    def decorator(cls: Type[HealthCheckPlugin]) -> Type[HealthCheckPlugin]:
        if category is not None:
            cls.category = HealthCheckCategory(category)
        cls.priority = cls.category.default_priority if priority is None else priority
        if timeout_seconds is not None:
            cls.timeout_seconds = timeout_seconds
        if required_for_ready is not None:
            cls.required_for_ready = required_for_ready
        get_registry().register(cls())
        return cls

    return decorator


__all__ = [
    "HealthCheckRegistry",
    "get_registry",
    "register_check",
]
