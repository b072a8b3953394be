# ============================================================================
# SOURCE LIST VALIDATOR
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Service - Pre-admission source filtering
# PURPOSE: Reduce a requested source list to reachable URIs, in order
# CREATED: 19 OCT 2026
# ============================================================================
"""
Source List Validator

Runs before a job exists:
1. Strip whitespace, drop empty entries
2. Reject malformed URIs (no http/https scheme or no host)
3. Probe the rest concurrently with a bounded timeout
4. Return accepted URIs in original order plus rejected URIs with reasons

No job state is touched here. If nothing survives, the start request
fails with NoValidSourcesError.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

from core.config import ValidationDefaults
from core.contracts import SourceVerdict
from core.errors import NoValidSourcesError
from services.prober import SourceProber

logger = logging.getLogger(__name__)


ALLOWED_SCHEMES = ("http", "https")


@dataclass
class RejectedSource:
    """A source dropped during validation."""
    uri: str
    reason: SourceVerdict


@dataclass
class ValidationReport:
    """Outcome of validating one source list."""
    accepted: List[str] = field(default_factory=list)
    rejected: List[RejectedSource] = field(default_factory=list)

    def raise_if_empty(self) -> None:
        if not self.accepted:
            raise NoValidSourcesError(
                rejected=[(r.uri, r.reason.value) for r in self.rejected]
            )


def is_well_formed(uri: str) -> bool:
    """True if uri has an http(s) scheme and a host."""
    try:
        parsed = urlparse(uri)
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.netloc)


class SourceListValidator:
    """Filter a raw source list down to reachable URIs."""

    def __init__(
        self,
        prober: SourceProber,
        defaults: Optional[ValidationDefaults] = None,
    ):
        self.prober = prober
        self.defaults = defaults or ValidationDefaults()

    async def validate(self, raw_sources: List[str]) -> ValidationReport:
        """
        Validate a requested source list.

        Args:
            raw_sources: Source URIs as submitted

        Returns:
            ValidationReport (accepted in original order)
        """
        candidates: List[str] = []
        report = ValidationReport()

        for raw in raw_sources:
            uri = (raw or "").strip()
            if not uri:
                continue
            if not is_well_formed(uri):
                report.rejected.append(RejectedSource(uri, SourceVerdict.MALFORMED))
                continue
            candidates.append(uri)

        semaphore = asyncio.Semaphore(self.defaults.concurrency)

        async def probe_one(uri: str) -> bool:
            async with semaphore:
                try:
                    return await asyncio.wait_for(
                        self.prober.probe(uri, self.defaults.probe_timeout_seconds),
                        # Guard against probers that ignore their timeout
                        timeout=self.defaults.probe_timeout_seconds + 1.0,
                    )
                except asyncio.TimeoutError:
                    return False
                except Exception as e:
                    logger.warning(f"Probe raised for {uri}: {type(e).__name__}: {e}")
                    return False

        verdicts = await asyncio.gather(*(probe_one(uri) for uri in candidates))

        for uri, reachable in zip(candidates, verdicts):
            if reachable:
                report.accepted.append(uri)
            else:
                report.rejected.append(RejectedSource(uri, SourceVerdict.UNREACHABLE))

        logger.info(
            f"Validated {len(raw_sources)} sources: "
            f"{len(report.accepted)} accepted, {len(report.rejected)} rejected"
        )
        return report


__all__ = [
    "RejectedSource",
    "ValidationReport",
    "SourceListValidator",
    "is_well_formed",
]
