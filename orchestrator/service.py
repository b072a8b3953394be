# ============================================================================
# RELAY ORCHESTRATOR
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Orchestrator facade
# PURPOSE: Admit jobs, spawn sequencer tasks, expose status and cancellation
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Orchestrator

The object the HTTP layer talks to. Start flow:

1. Validate the source list (probe, drop unreachable)
2. Provision a destination (static URL or per-job YouTube broadcast)
3. Build the Job, admit it to the registry
4. Spawn one asyncio task running the job's sequencer
5. Return immediately; callers poll status

Runs one background task of its own: the reaper, which drops terminal jobs
from the registry once their retention period is over.

Shutdown cancels every job, waits up to the shutdown timeout for the
sequencers to reap their processes, then clears scratch space.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from core.config import Defaults, get_defaults
from core.contracts import JobState
from core.errors import RelayOrchestratorError
from core.logging import ComponentType, log_checkpoint, log_context
from core.models import Job, JobSnapshot, RelayEvent
from orchestrator.registry import JobRegistry
from orchestrator.sequencer import JobSequencer
from relay.engine import FFmpegRelayEngine, RelayEngine
from relay.runner import RelayAttemptRunner
from services.fallback import FallbackPolicy
from services.prober import HttpSourceProber, SourceProber
from services.provisioners import EndpointProvisioner, create_provisioner, default_title
from services.source_validator import RejectedSource, SourceListValidator
from services.staging import StagingManager

logger = logging.getLogger(__name__)


ProvisionerFactory = Callable[[str], EndpointProvisioner]


@dataclass
class StartResult:
    """Outcome of an accepted start request."""
    job: JobSnapshot
    accepted: List[str] = field(default_factory=list)
    rejected: List[RejectedSource] = field(default_factory=list)
    destination: Dict[str, Any] = field(default_factory=dict)


class RelayOrchestrator:
    """
    Owns the registry, the shared staging manager and one task per job.

    All collaborators are injectable; defaults are built from configuration.
    """

    def __init__(
        self,
        defaults: Optional[Defaults] = None,
        prober: Optional[SourceProber] = None,
        staging: Optional[StagingManager] = None,
        engine: Optional[RelayEngine] = None,
        policy: Optional[FallbackPolicy] = None,
        provisioner_factory: Optional[ProvisionerFactory] = None,
    ):
        self.defaults = defaults or get_defaults()
        d = self.defaults

        self.prober = prober or HttpSourceProber()
        self.validator = SourceListValidator(self.prober, d.validation)
        self.staging = staging or StagingManager(defaults=d.staging)
        self.engine = engine or FFmpegRelayEngine(d.relay.ffmpeg_bin, d.relay.diagnostics_limit)
        self.policy = policy or FallbackPolicy.from_file(
            d.relay.profiles_file,
            max_attempts=d.relay.max_attempts_per_source,
        )
        self._provisioner_factory = provisioner_factory or (
            lambda name: create_provisioner(name, d.provisioners)
        )
        self.registry = JobRegistry(
            retention_seconds=d.jobs.retention_seconds,
            event_history=d.jobs.event_history,
        )

        # State
        self._running = False
        self._stop_event = asyncio.Event()
        self._reaper_task: Optional[asyncio.Task] = None

        # Metrics
        self._started_at: Optional[datetime] = None
        self._jobs_started = 0
        self._jobs_rejected = 0
        self._jobs_by_state: Dict[str, int] = {
            JobState.COMPLETED.value: 0,
            JobState.CANCELLED.value: 0,
            JobState.ABANDONED.value: 0,
        }
        self._jobs_purged = 0
        self._last_reap_at: Optional[datetime] = None

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def start(self) -> None:
        """Start the reaper. Jobs can be accepted once this returns."""
        if self._running:
            logger.warning("Orchestrator already running")
            return

        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._stop_event.clear()
        self._reaper_task = asyncio.create_task(self._reaper_loop(), name="relay-reaper")
        logger.info(
            f"Relay orchestrator started (engine={self.defaults.relay.ffmpeg_bin}, "
            f"scratch={self.staging.scratch_root}, "
            f"profiles={[p.name for p in self.policy.ladder.profiles]})"
        )

    async def stop(self) -> None:
        """
        Stop gracefully.

        Cancels every job, waits for sequencers to reap their processes,
        force-cancels whatever is left after the shutdown timeout, then
        removes all scratch directories.
        """
        logger.info("Stopping relay orchestrator")
        self._running = False
        self._stop_event.set()

        if self._reaper_task:
            self._reaper_task.cancel()
            try:
                await self._reaper_task
            except asyncio.CancelledError:
                pass
            self._reaper_task = None

        signalled = self.registry.cancel_all()
        pending_tasks = [t for t in self.registry.tasks() if not t.done()]
        if pending_tasks:
            _, pending = await asyncio.wait(
                pending_tasks, timeout=self.defaults.jobs.shutdown_timeout_seconds,
            )
            for task in pending:
                task.cancel()
            if pending:
                logger.warning(f"Force-cancelled {len(pending)} job tasks at shutdown")
                await asyncio.gather(*pending, return_exceptions=True)

        self.staging.cleanup_all()
        await self.staging.close()
        close_prober = getattr(self.prober, "close", None)
        if close_prober is not None:
            await close_prober()

        logger.info(
            f"Relay orchestrator stopped (signalled={signalled}, "
            f"jobs_started={self._jobs_started}, {self._jobs_by_state})"
        )

    async def _reaper_loop(self) -> None:
        """Drop terminal jobs whose retention period has passed."""
        interval = self.defaults.jobs.reaper_interval_seconds
        while not self._stop_event.is_set():
            try:
                self._jobs_purged += self.registry.purge_expired()
                self._last_reap_at = datetime.now(timezone.utc)
            except Exception as e:
                logger.error(f"Reaper error: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                break
            except asyncio.TimeoutError:
                pass

    # ========================================================================
    # JOB OPERATIONS
    # ========================================================================

    async def start_job(
        self,
        sources: List[str],
        title: Optional[str] = None,
        destination_hint: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
    ) -> StartResult:
        """
        Validate, provision and admit a job, then start its sequencer.

        Raises:
            NoValidSourcesError: no source survived validation (no job created)
            UnknownProvisionerError: destination_hint names nothing registered
            EndpointProvisionError: the destination platform refused
        """
        if self._stop_event.is_set():
            raise RelayOrchestratorError("Orchestrator is shutting down")

        with log_context(component=ComponentType.ORCHESTRATOR.value):
            report = await self.validator.validate(sources)
            if not report.accepted:
                self._jobs_rejected += 1
            report.raise_if_empty()

            provisioner_name = destination_hint or self.defaults.provisioners.default_provisioner
            provisioner = self._provisioner_factory(provisioner_name)
            title = title or default_title()
            endpoint = await provisioner.provision(title)

            deadline_seconds = deadline_seconds or self.defaults.jobs.default_deadline_seconds
            deadline = None
            if deadline_seconds:
                deadline = datetime.now(timezone.utc) + timedelta(seconds=deadline_seconds)

            job = Job.from_sources(uuid.uuid4().hex, report.accepted, title=title, deadline=deadline)
            job.bind_destination(endpoint.destination_uri, endpoint.info)

            cancel_event = asyncio.Event()
            snapshot = self.registry.create(job, cancel_event)

            sequencer = JobSequencer(
                job=job,
                registry=self.registry,
                staging=self.staging,
                runner=RelayAttemptRunner(self.engine, self.defaults.relay),
                policy=self.policy,
                cancel_event=cancel_event,
                defaults=self.defaults.relay,
            )
            task = asyncio.create_task(
                self._run_job(sequencer),
                name=f"relay-job-{job.job_id[:8]}",
            )
            self.registry.attach_task(job.job_id, task)
            self._jobs_started += 1

            with log_context(job_id=job.job_id):
                log_checkpoint(
                    "job_admitted",
                    {
                        "accepted": len(report.accepted),
                        "rejected": len(report.rejected),
                        "provisioner": provisioner_name,
                    },
                    logger,
                )

        return StartResult(
            job=snapshot,
            accepted=report.accepted,
            rejected=report.rejected,
            destination=dict(endpoint.info),
        )

    async def _run_job(self, sequencer: JobSequencer) -> Optional[JobSnapshot]:
        try:
            final = await sequencer.run()
        except asyncio.CancelledError:
            self._count(sequencer.job.state)
            raise
        self._count(final.state)
        return final

    def _count(self, state: JobState) -> None:
        if state.value in self._jobs_by_state:
            self._jobs_by_state[state.value] += 1

    def cancel_job(self, job_id: str) -> bool:
        """Raises JobNotFoundError for unknown ids."""
        return self.registry.cancel(job_id)

    def cancel_all(self) -> int:
        return self.registry.cancel_all()

    def get_status(self, job_id: str) -> JobSnapshot:
        """Raises JobNotFoundError for unknown or expired ids."""
        return self.registry.get(job_id)

    def list_status(self, active_only: bool = False) -> List[JobSnapshot]:
        if active_only:
            return self.registry.list_active()
        return self.registry.list_all()

    def events(self, job_id: str) -> List[RelayEvent]:
        return self.registry.events(job_id)

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> JobSnapshot:
        """Wait until the job's task finishes; returns the latest snapshot."""
        task = self.registry.task_for(job_id)
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)
        return self.registry.get(job_id)

    # ========================================================================
    # STATS AND PROPERTIES
    # ========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> Dict[str, Any]:
        uptime_seconds = None
        if self._started_at:
            uptime_seconds = (datetime.now(timezone.utc) - self._started_at).total_seconds()

        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "uptime_seconds": uptime_seconds,
            "active_jobs": len(self.registry.list_active()),
            "tracked_jobs": len(self.registry),
            "jobs_started": self._jobs_started,
            "jobs_rejected": self._jobs_rejected,
            "jobs_completed": self._jobs_by_state[JobState.COMPLETED.value],
            "jobs_cancelled": self._jobs_by_state[JobState.CANCELLED.value],
            "jobs_abandoned": self._jobs_by_state[JobState.ABANDONED.value],
            "jobs_purged": self._jobs_purged,
            "last_reap_at": self._last_reap_at.isoformat() if self._last_reap_at else None,
            "reaper_interval_seconds": self.defaults.jobs.reaper_interval_seconds,
            "profiles": [p.name for p in self.policy.ladder.profiles],
            "attempt_budget": self.policy.attempt_budget,
            "scratch_root": self.staging.scratch_root,
        }


__all__ = ["RelayOrchestrator", "StartResult"]
