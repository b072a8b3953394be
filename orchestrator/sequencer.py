# ============================================================================
# JOB SEQUENCER
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Per-job state machine
# PURPOSE: Walk a job's sources in order: stage, relay, retry or abandon
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Sequencer

One sequencer per job, run as one asyncio task. It owns the Job object;
everyone else sees snapshots published to the registry.

State machine:

    VALIDATING -> STAGING(i) -> RELAYING(i, n) -> STAGING(i+1) ... -> COMPLETED
                      |              |
                      |              +-- failure -> policy: RETRY -> RELAYING(i, n+1)
                      |                                     ABANDON -> STAGING(i+1)
                      +-- staging failure -> policy (runner never started)

    any non-terminal --cancel/deadline--> CANCELLING -> CANCELLED
    any non-terminal --fatal error------> ABANDONED

Invariants:
- current_index never decreases
- at most one relay process alive (one runner, used sequentially)
- the job's scratch directory is removed on every terminal path
- cancellation is checked after every await
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from core.config import RelayDefaults
from core.contracts import AttemptOutcome, FailureKind, FallbackAction, JobState, SourceOutcome
from core.errors import EngineUnavailableError, FatalJobError, StagingError
from core.logging import ComponentType, log_checkpoint, log_context
from core.models import Job, JobSnapshot, RelayAttempt, RelayEvent, RelayProfile, SourceEntry
from orchestrator.registry import JobRegistry
from relay.runner import RelayAttemptRunner
from services.fallback import FallbackPolicy
from services.staging import StagingManager

logger = logging.getLogger(__name__)


DEADLINE_EXCEEDED = "deadline exceeded"


class JobSequencer:
    """Drives one job from admission to a terminal state."""

    def __init__(
        self,
        job: Job,
        registry: JobRegistry,
        staging: StagingManager,
        runner: RelayAttemptRunner,
        policy: FallbackPolicy,
        cancel_event: asyncio.Event,
        defaults: Optional[RelayDefaults] = None,
    ):
        self.job = job
        self.registry = registry
        self.staging = staging
        self.runner = runner
        self.policy = policy
        self.cancel_event = cancel_event
        self.defaults = defaults or RelayDefaults()
        self._deadline_hit = False

    # ========================================================================
    # ENTRY POINT
    # ========================================================================

    async def run(self) -> JobSnapshot:
        """Run the job to a terminal state and return the final snapshot."""
        job = self.job
        loop = asyncio.get_running_loop()
        deadline_handle = None

        with log_context(job_id=job.job_id, component=ComponentType.SEQUENCER.value):
            try:
                job.mark_started()
                log_checkpoint("job_started", {"sources": len(job.sources)}, logger)

                if job.deadline is not None:
                    delay = (job.deadline - datetime.now(timezone.utc)).total_seconds()
                    deadline_handle = loop.call_later(max(0.0, delay), self._deadline_expired)

                await self._run_sources()

                if self._cancel_requested():
                    await self._finish_cancelled()
                else:
                    await self._finish_completed()

            except asyncio.CancelledError:
                # Task cancelled from outside (shutdown)
                await self.staging.cleanup_job(job.job_id)
                if not job.state.is_terminal():
                    job.mark_cancelled("orchestrator shutdown")
                    self._publish("job_terminated")
                raise

            except FatalJobError as e:
                logger.error(f"Fatal error, abandoning job: {e}")
                await self._finish_abandoned(f"{type(e).__name__}: {e}")

            except Exception as e:
                logger.exception(f"Unexpected error, abandoning job: {e}")
                await self._finish_abandoned(f"{type(e).__name__}: {e}")

            finally:
                if deadline_handle is not None:
                    deadline_handle.cancel()
                await self.staging.cleanup_job(job.job_id)

        return JobSnapshot.from_job(job)

    # ========================================================================
    # SOURCE LOOP
    # ========================================================================

    async def _run_sources(self) -> None:
        job = self.job
        while job.current_index < len(job.sources):
            if self._cancel_requested():
                return

            entry = job.sources[job.current_index]
            with log_context(source_index=entry.index):
                await self._process_source(entry)

                if self._cancel_requested():
                    return

                await self.staging.unstage(job.job_id, entry.index)
                entry.staged_path = None
                job.advance_to(entry.index + 1)
                self._publish()

    async def _process_source(self, entry: SourceEntry) -> None:
        """Stage and relay one source until it is relayed, abandoned or cancelled."""
        job = self.job
        profile = self.policy.initial_profile()

        while True:
            if self._cancel_requested():
                return

            attempt_number = entry.attempt_count + 1
            job.current_attempt = attempt_number
            job.current_profile = profile.name
            attempt: Optional[RelayAttempt] = None

            with log_context(attempt=attempt_number, profile=profile.name):
                if entry.staged_path is None:
                    self._set_state(JobState.STAGING)
                    try:
                        path = await self._stage(entry)
                    except StagingError as e:
                        logger.warning(f"Staging failed: {e}")
                        attempt = RelayAttempt.staging_failure(
                            job_id=job.job_id,
                            source_index=entry.index,
                            attempt_number=attempt_number,
                            profile_name=profile.name,
                            profile_ordinal=self.policy.ordinal_of(profile),
                            failure_kind=e.failure_kind,
                            message=str(e),
                        )
                    else:
                        if path is None:
                            return
                        entry.staged_path = path
                        log_checkpoint("source_staged", {"path": path}, logger)

                if attempt is None:
                    if self._cancel_requested():
                        return
                    self._set_state(JobState.RELAYING)
                    attempt = await self._relay(entry, profile, attempt_number)

                entry.attempt_count += 1
                log_checkpoint(
                    "attempt_finished",
                    {
                        "outcome": attempt.outcome.value,
                        "failure_kind": attempt.failure_kind.value if attempt.failure_kind else None,
                        "exit_code": attempt.exit_code,
                        "timemark": attempt.last_timemark,
                    },
                    logger,
                )

                if attempt.outcome == AttemptOutcome.CANCELLED:
                    return

                if attempt.succeeded:
                    entry.outcome = SourceOutcome.RELAYED
                    job.successes += 1
                    self._publish()
                    return

                if attempt.failure_kind == FailureKind.ENGINE_UNAVAILABLE:
                    raise EngineUnavailableError(attempt.diagnostics or "relay engine unavailable")

                entry.record_failure(attempt.failure_kind or FailureKind.INTERNAL, attempt.diagnostics)
                job.last_error = entry.last_failure[:2000] if entry.last_failure else None

                decision = self.policy.next(entry, attempt)
                if decision.action == FallbackAction.RETRY:
                    profile = decision.profile
                    self._publish()
                    continue

                entry.outcome = SourceOutcome.ABANDONED
                log_checkpoint(
                    "source_abandoned",
                    {"attempts": entry.attempt_count, "reason": entry.last_failure_kind.value},
                    logger,
                )
                self._publish()
                return

    async def _stage(self, entry: SourceEntry) -> Optional[str]:
        """Stage one source, racing the download against cancellation.

        Returns None if cancellation won.
        """
        stage_task = asyncio.create_task(
            self.staging.stage(self.job.job_id, entry.index, entry.uri)
        )
        cancel_wait = asyncio.create_task(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {stage_task, cancel_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()
            if not stage_task.done():
                stage_task.cancel()
                await asyncio.gather(stage_task, return_exceptions=True)

        if stage_task in done:
            return stage_task.result()
        logger.info("Cancelled while staging")
        return None

    async def _relay(self, entry: SourceEntry, profile: RelayProfile, attempt_number: int) -> RelayAttempt:
        attempt = RelayAttempt(
            job_id=self.job.job_id,
            source_index=entry.index,
            attempt_number=attempt_number,
            profile_name=profile.name,
            profile_ordinal=self.policy.ordinal_of(profile),
        )
        return await self.runner.run(
            entry.staged_path,
            self.job.destination_uri,
            profile,
            timeout=self.defaults.attempt_timeout_seconds,
            on_event=self._on_event,
            cancel_event=self.cancel_event,
            attempt=attempt,
        )

    def _on_event(self, event: RelayEvent) -> None:
        self.registry.record_event(event)

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def _cancel_requested(self) -> bool:
        if not self.cancel_event.is_set():
            return False
        if self.job.state not in (JobState.CANCELLING,) and not self.job.state.is_terminal():
            self.job.transition(JobState.CANCELLING)
            self._publish("job_cancelling")
        return True

    def _deadline_expired(self) -> None:
        if self.cancel_event.is_set():
            return
        logger.warning("Job deadline exceeded, cancelling")
        self._deadline_hit = True
        self.cancel_event.set()

    # ========================================================================
    # TERMINAL STATES
    # ========================================================================

    async def _finish_completed(self) -> None:
        job = self.job
        await self.staging.cleanup_job(job.job_id)
        if job.successes == 0:
            logger.warning(
                f"Source list exhausted with no successful relays "
                f"({job.abandoned_count} abandoned)"
            )
        job.mark_completed()
        self._publish("job_terminated")

    async def _finish_cancelled(self) -> None:
        job = self.job
        await self.staging.cleanup_job(job.job_id)
        job.mark_cancelled(DEADLINE_EXCEEDED if self._deadline_hit else None)
        self._publish("job_terminated")

    async def _finish_abandoned(self, message: str) -> None:
        job = self.job
        await self.staging.cleanup_job(job.job_id)
        job.mark_abandoned(message)
        self._publish("job_terminated")

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _set_state(self, state: JobState) -> None:
        if self.job.state != state:
            self.job.transition(state)
        self._publish()

    def _publish(self, checkpoint: Optional[str] = None) -> None:
        snapshot = self.registry.publish(self.job)
        if checkpoint:
            log_checkpoint(
                checkpoint,
                {
                    "state": snapshot.state.value,
                    "current_source_index": snapshot.current_source_index,
                    "successes": snapshot.successes,
                    "abandoned": snapshot.abandoned,
                    "last_error": snapshot.last_error,
                },
                logger,
            )


__all__ = ["JobSequencer", "DEADLINE_EXCEEDED"]
