# ============================================================================
# JOB REGISTRY
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Shared job table
# PURPOSE: Admit jobs, publish snapshots, route cancellation, expire jobs
# CREATED: 19 OCT 2026
# ============================================================================
"""
Job Registry

The only state shared between job tasks and callers. Holds, per job:
    - latest JobSnapshot (published by the job's sequencer)
    - cancel Event (set by cancel/cancel_all)
    - the asyncio Task running the sequencer
    - bounded history of RelayEvents

Callers only ever receive frozen snapshots. Terminal jobs stay readable for
a retention period, then purge_expired() drops them.
"""

import asyncio
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from core.errors import JobNotFoundError
from core.models import Job, JobSnapshot, RelayEvent

logger = logging.getLogger(__name__)


@dataclass
class _JobRecord:
    snapshot: JobSnapshot
    cancel_event: asyncio.Event
    task: Optional[asyncio.Task] = None
    events: Deque[RelayEvent] = field(default_factory=deque)
    terminal_at: Optional[datetime] = None


class JobRegistry:
    """Thread-safe table of admitted jobs."""

    def __init__(self, retention_seconds: float = 300.0, event_history: int = 200):
        self.retention_seconds = retention_seconds
        self.event_history = event_history
        self._lock = threading.Lock()
        self._records: Dict[str, _JobRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def create(self, job: Job, cancel_event: asyncio.Event) -> JobSnapshot:
        """
        Admit a job.

        Raises:
            ValueError: job_id already registered
        """
        snapshot = JobSnapshot.from_job(job)
        with self._lock:
            if job.job_id in self._records:
                raise ValueError(f"Job already registered: {job.job_id}")
            self._records[job.job_id] = _JobRecord(
                snapshot=snapshot,
                cancel_event=cancel_event,
                events=deque(maxlen=self.event_history),
            )
        logger.debug(f"Registered job {job.job_id} ({len(job.sources)} sources)")
        return snapshot

    def _record(self, job_id: str) -> _JobRecord:
        record = self._records.get(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record

    def get(self, job_id: str) -> JobSnapshot:
        with self._lock:
            return self._record(job_id).snapshot

    def publish(self, job: Job) -> JobSnapshot:
        """Replace the job's snapshot. Called by the owning sequencer only."""
        snapshot = JobSnapshot.from_job(job)
        with self._lock:
            record = self._records.get(job.job_id)
            if record is None:
                # Purged while still running; nothing to update
                return snapshot
            record.snapshot = snapshot
            if snapshot.is_terminal and record.terminal_at is None:
                record.terminal_at = datetime.now(timezone.utc)
        return snapshot

    def attach_task(self, job_id: str, task: asyncio.Task) -> None:
        with self._lock:
            self._record(job_id).task = task

    def task_for(self, job_id: str) -> Optional[asyncio.Task]:
        with self._lock:
            return self._record(job_id).task

    def tasks(self) -> List[asyncio.Task]:
        with self._lock:
            return [r.task for r in self._records.values() if r.task is not None]

    def cancel(self, job_id: str) -> bool:
        """
        Request cancellation of one job.

        Returns:
            True if a live job was signalled, False if already terminal

        Raises:
            JobNotFoundError: unknown job_id
        """
        with self._lock:
            record = self._record(job_id)
            if record.snapshot.is_terminal or record.cancel_event.is_set():
                return False
            record.cancel_event.set()
        logger.info(f"Cancellation requested for job {job_id}")
        return True

    def cancel_all(self) -> int:
        """Signal every non-terminal job. Returns how many were signalled."""
        count = 0
        with self._lock:
            for record in self._records.values():
                if not record.snapshot.is_terminal and not record.cancel_event.is_set():
                    record.cancel_event.set()
                    count += 1
        if count:
            logger.info(f"Cancellation requested for {count} jobs")
        return count

    def list_active(self) -> List[JobSnapshot]:
        with self._lock:
            return [r.snapshot for r in self._records.values() if not r.snapshot.is_terminal]

    def list_all(self) -> List[JobSnapshot]:
        with self._lock:
            return [r.snapshot for r in self._records.values()]

    def record_event(self, event: RelayEvent) -> None:
        if event.job_id is None:
            return
        with self._lock:
            record = self._records.get(event.job_id)
            if record is not None:
                record.events.append(event)

    def events(self, job_id: str) -> List[RelayEvent]:
        with self._lock:
            return list(self._record(job_id).events)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop terminal jobs older than the retention period."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            expired = [
                job_id
                for job_id, record in self._records.items()
                if record.terminal_at is not None
                and (now - record.terminal_at).total_seconds() >= self.retention_seconds
            ]
            for job_id in expired:
                del self._records[job_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired jobs")
        return len(expired)


__all__ = ["JobRegistry"]
