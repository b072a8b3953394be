# ============================================================================
# RELAY ATTEMPT RUNNER
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Supervises one relay subprocess at a time
# PURPOSE: Run one attempt to a terminal outcome and always reap the process
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Attempt Runner

One runner per job. Each run():
1. Starts exactly one engine process (lock + live counter)
2. Emits started, throttled progress, then ended or failed
3. Races the process against the attempt timeout and the cancel event
4. On timeout/cancel: interrupt, wait the grace period, then kill
5. Awaits process exit before returning, even if the caller is cancelled

Outcomes:
    exit 0              -> SUCCEEDED
    exit != 0           -> FAILED (ENGINE_ERROR, stderr tail as diagnostics)
    timeout             -> TIMED_OUT (TIMEOUT)
    cancel event        -> CANCELLED
    binary missing      -> FAILED (ENGINE_UNAVAILABLE)
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from core.config import RelayDefaults
from core.contracts import AttemptOutcome, FailureKind
from core.errors import EngineUnavailableError
from core.logging import log_context
from core.models import RelayAttempt, RelayEvent, RelayProfile
from relay.engine import RelayEngine, RelayProcess

logger = logging.getLogger(__name__)


EventCallback = Callable[[RelayEvent], Union[None, Awaitable[None]]]


class RelayAttemptRunner:
    """Supervises relay attempts for a single job."""

    def __init__(self, engine: RelayEngine, defaults: Optional[RelayDefaults] = None):
        self.engine = engine
        self.defaults = defaults or RelayDefaults()
        self._lock = asyncio.Lock()
        self._live = 0

    @property
    def live_processes(self) -> int:
        """Processes started and not yet reaped (0 or 1)."""
        return self._live

    async def run(
        self,
        local_path: str,
        destination_uri: str,
        profile: RelayProfile,
        timeout: Optional[float] = None,
        on_event: Optional[EventCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        attempt: Optional[RelayAttempt] = None,
    ) -> RelayAttempt:
        """
        Run one attempt to a terminal outcome.

        Args:
            local_path: Staged input file
            destination_uri: Opaque output URI
            profile: Engine configuration for this attempt
            timeout: Seconds before the attempt is interrupted (None = none)
            on_event: Sync or async observer for RelayEvents
            cancel_event: Set by the sequencer to interrupt the attempt
            attempt: Pre-filled attempt record (job/source/attempt identity)

        Returns:
            The attempt with its terminal outcome set
        """
        if attempt is None:
            attempt = RelayAttempt(profile_name=profile.name)
        attempt.timeout_seconds = timeout

        async with self._lock:
            with log_context(
                job_id=attempt.job_id,
                source_index=attempt.source_index,
                attempt=attempt.attempt_number,
                profile=profile.name,
            ):
                return await self._run_locked(
                    local_path, destination_uri, profile, timeout,
                    on_event, cancel_event, attempt,
                )

    async def _run_locked(
        self,
        local_path: str,
        destination_uri: str,
        profile: RelayProfile,
        timeout: Optional[float],
        on_event: Optional[EventCallback],
        cancel_event: Optional[asyncio.Event],
        attempt: RelayAttempt,
    ) -> RelayAttempt:
        identity = {
            "job_id": attempt.job_id,
            "source_index": attempt.source_index,
            "attempt": attempt.attempt_number,
            "profile": profile.name,
        }

        if cancel_event is not None and cancel_event.is_set():
            attempt.finish(AttemptOutcome.CANCELLED)
            return attempt

        try:
            process = await self.engine.start(local_path, destination_uri, profile)
        except EngineUnavailableError as e:
            logger.error(f"Relay engine unavailable: {e}")
            attempt.finish(
                AttemptOutcome.FAILED,
                failure_kind=FailureKind.ENGINE_UNAVAILABLE,
                diagnostics=str(e),
            )
            await self._emit(on_event, RelayEvent.failed(str(e), **identity))
            return attempt

        self._live += 1
        try:
            await self._emit(on_event, RelayEvent.started(process.command, **identity))
            outcome, kind, exit_code = await self._supervise(
                process, timeout, cancel_event, on_event, identity, attempt,
            )
        finally:
            try:
                if process.returncode is None:
                    await asyncio.shield(self._terminate(process))
            finally:
                self._live -= 1

        diagnostics = None
        if outcome != AttemptOutcome.SUCCEEDED:
            diagnostics = process.diagnostics or None
        attempt.finish(outcome, failure_kind=kind, diagnostics=diagnostics, exit_code=exit_code)

        logger.info(
            f"Attempt finished: {outcome.value}"
            + (f" ({kind.value})" if kind else "")
            + f" exit={exit_code} timemark={attempt.last_timemark}"
        )

        if outcome == AttemptOutcome.SUCCEEDED:
            await self._emit(on_event, RelayEvent.ended(attempt.last_timemark, **identity))
        elif outcome == AttemptOutcome.CANCELLED:
            await self._emit(
                on_event,
                RelayEvent.ended(attempt.last_timemark, message="cancelled", **identity),
            )
        else:
            await self._emit(on_event, RelayEvent.failed(diagnostics, **identity))

        return attempt

    async def _supervise(
        self,
        process: RelayProcess,
        timeout: Optional[float],
        cancel_event: Optional[asyncio.Event],
        on_event: Optional[EventCallback],
        identity: Dict[str, Any],
        attempt: RelayAttempt,
    ) -> Tuple[AttemptOutcome, Optional[FailureKind], Optional[int]]:
        pump = asyncio.create_task(self._pump(process, on_event, identity, attempt))
        waiters = {pump}
        cancel_wait = None
        if cancel_event is not None:
            cancel_wait = asyncio.create_task(cancel_event.wait())
            waiters.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            pump.cancel()
            raise
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        if pump in done:
            exit_code = await process.wait()
            if pump.exception() is not None:
                logger.warning(f"Progress reader failed: {pump.exception()!r}")
            if exit_code == 0:
                return AttemptOutcome.SUCCEEDED, None, exit_code
            return AttemptOutcome.FAILED, FailureKind.ENGINE_ERROR, exit_code

        if cancel_event is not None and cancel_event.is_set():
            outcome, kind = AttemptOutcome.CANCELLED, None
            logger.info("Cancel requested, interrupting relay process")
        else:
            outcome, kind = AttemptOutcome.TIMED_OUT, FailureKind.TIMEOUT
            logger.warning(f"Attempt timed out after {timeout}s, interrupting relay process")

        exit_code = await self._terminate(process)
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)
        return outcome, kind, exit_code

    async def _terminate(self, process: RelayProcess) -> int:
        """Interrupt, then kill after the grace period. Always reaps."""
        process.interrupt()
        try:
            return await asyncio.wait_for(
                asyncio.shield(process.wait()),
                timeout=self.defaults.grace_period_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Relay process ignored interrupt for "
                f"{self.defaults.grace_period_seconds}s, killing"
            )
            process.kill()
            return await process.wait()

    async def _pump(
        self,
        process: RelayProcess,
        on_event: Optional[EventCallback],
        identity: Dict[str, Any],
        attempt: RelayAttempt,
    ) -> None:
        """Forward progress events, throttled to the configured interval."""
        last_sent = float("-inf")
        async for event in process.events():
            if event.timemark:
                attempt.last_timemark = event.timemark
            now = time.monotonic()
            if now - last_sent < self.defaults.progress_interval_seconds:
                continue
            last_sent = now
            await self._emit(on_event, event.model_copy(update=identity))

    async def _emit(self, on_event: Optional[EventCallback], event: RelayEvent) -> None:
        if on_event is None:
            return
        try:
            result = on_event(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Relay event callback failed ({event.event_type.value}): {e}")


__all__ = ["RelayAttemptRunner", "EventCallback"]
