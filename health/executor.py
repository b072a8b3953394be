# ============================================================================
# HEALTH CHECK EXECUTOR
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Infrastructure - Parallel health check execution
# PURPOSE: Execute health checks with timeouts and aggregation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Executor

Execution Strategy:
1. Group checks by category priority
2. Run tiers in order, checks within a tier in parallel
3. Each check bounded by its own timeout
4. Overall timeout bounds the whole run; later tiers are skipped
5. Aggregate with 'worst wins'
"""

import asyncio
import logging
import time
from itertools import groupby
from typing import Dict, List, Optional

from health.core import (
    AggregatedHealthResult,
    HealthCheckPlugin,
    HealthCheckResult,
    HealthStatus,
)
from health.registry import HealthCheckRegistry, get_registry

logger = logging.getLogger(__name__)


class HealthCheckExecutor:
    """Runs registered checks tier by tier."""

    def __init__(
        self,
        registry: Optional[HealthCheckRegistry] = None,
        overall_timeout: float = 30.0,
    ):
        self.registry = registry or get_registry()
        self.overall_timeout = overall_timeout

    async def execute_all(self, early_terminate: bool = False) -> AggregatedHealthResult:
        """
        Execute all registered health checks.

        Args:
            early_terminate: Stop after the first tier with an unhealthy result
        """
        start_time = time.monotonic()
        results: Dict[str, HealthCheckResult] = {}
        checks = self.registry.get_checks_by_priority()

        for _, tier in groupby(checks, key=lambda c: c.priority):
            tier_checks = list(tier)
            elapsed = time.monotonic() - start_time
            if elapsed >= self.overall_timeout:
                logger.warning(
                    f"Health check overall timeout ({self.overall_timeout}s) exceeded"
                )
                for check in tier_checks:
                    results[check.name] = HealthCheckResult.unhealthy(
                        "Skipped: overall timeout exceeded"
                    )
                continue

            tier_results = await self._execute_tier(tier_checks)
            results.update(tier_results)

            if early_terminate and any(
                r.status == HealthStatus.UNHEALTHY for r in tier_results.values()
            ):
                logger.info("Early termination: unhealthy check detected")
                break

        return self._aggregate(results, start_time)

    async def execute_required(self) -> AggregatedHealthResult:
        """Execute only checks required for /readyz, all in parallel."""
        start_time = time.monotonic()
        results = await self._execute_tier(self.registry.get_required_checks())
        return self._aggregate(results, start_time)

    async def execute_single(self, name: str) -> Optional[HealthCheckResult]:
        check = self.registry.get(name)
        if check is None:
            return None
        return await self._execute_check(check)

    async def _execute_tier(self, checks: List[HealthCheckPlugin]) -> Dict[str, HealthCheckResult]:
        results = await asyncio.gather(*(self._execute_check(c) for c in checks))
        return {check.name: result for check, result in zip(checks, results)}

    async def _execute_check(self, check: HealthCheckPlugin) -> HealthCheckResult:
        """Execute a single check with timeout. Never raises."""
        start_time = time.monotonic()

        try:
            result = await asyncio.wait_for(check.check(), timeout=check.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Health check {check.name} timed out after {check.timeout_seconds}s")
            result = HealthCheckResult.unhealthy(f"Timeout after {check.timeout_seconds}s")
        except Exception as e:
            logger.error(f"Health check {check.name} failed: {e}")
            result = HealthCheckResult.from_exception(e)

        result.duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(f"Health check {check.name}: {result.status.value} ({result.duration_ms:.1f}ms)")
        return result

    @staticmethod
    def _aggregate(results: Dict[str, HealthCheckResult], start_time: float) -> AggregatedHealthResult:
        return AggregatedHealthResult(
            status=HealthStatus.aggregate([r.status for r in results.values()]),
            checks=results,
            total_duration_ms=(time.monotonic() - start_time) * 1000,
        )


__all__ = ["HealthCheckExecutor"]
