"""In-memory job store with explicit create/update/sweep lifecycle."""
from __future__ import annotations

import asyncio
import logging
import secrets
import string
import threading
import time
from dataclasses import replace
from datetime import timedelta
from typing import Any

from .errors import JobNotFoundError
from .models import Job, JobStatus, MatchResult, utcnow

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_job_id() -> str:
    """Millisecond timestamp in base 36 followed by random base-36 characters."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(11))
    return _to_base36(int(time.time() * 1000)) + suffix


class JobStore:
    """Thread-safe map of job id to immutable :class:`Job` records.

    Every write replaces the record for a key under a lock, so readers see
    either the previous or the next snapshot of a job, never a partial one.
    Terminal jobs are frozen: updates addressed to them are dropped.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def create(self, job_id: str) -> Job:
        job = Job(id=job_id, progress="Queued", created_at=utcnow())
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is None:
                self._jobs[job_id] = job
        if existing is not None:
            logger.warning(f"Job {job_id} already exists, keeping the existing record")
            return existing
        logger.debug(f"Created job {job_id}")
        return job

    def get(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def update(self, job_id: str, **changes: Any) -> Job | None:
        """Apply a partial overwrite to a processing job.

        Returns the new record, or None when the job is unknown or already
        terminal.
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                logger.debug(f"Ignoring update for unknown job {job_id}")
                return None
            if current.status.is_terminal:
                logger.warning(f"Ignoring update for terminal job {job_id} ({current.status.value})")
                return None
            status = changes.get("status")
            if status is not None and JobStatus(status).is_terminal and "completed_at" not in changes:
                changes["completed_at"] = utcnow()
            updated = replace(current, **changes)
            self._jobs[job_id] = updated
        return updated

    def append_match(self, job_id: str, match: MatchResult) -> None:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None or current.status.is_terminal:
                logger.warning(f"Dropping match for job {job_id}: job is not processing")
                return
            self._jobs[job_id] = replace(current, matches=current.matches + (match,))

    def sweep(self, retention: timedelta) -> int:
        """Remove jobs created longer ago than ``retention``."""
        cutoff = utcnow() - retention
        with self._lock:
            stale = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
            for job_id in stale:
                del self._jobs[job_id]
        if stale:
            logger.info(f"Swept {len(stale)} job(s) older than {retention}")
        return len(stale)


async def run_sweeper(store: JobStore, *, interval: float, retention: timedelta) -> None:
    """Periodically sweep stale jobs until cancelled."""
    logger.info(f"Job sweeper started (interval={interval}s, retention={retention})")
    while True:
        await asyncio.sleep(interval)
        store.sweep(retention)
