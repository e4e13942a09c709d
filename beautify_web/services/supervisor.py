"""Job Supervisor: process-local registry of active job drains."""

import logging
import threading

logger = logging.getLogger(__name__)


class JobSupervisor:
    """
    Tracks which jobs have a running Job Processor.

    Each entry maps a job ID to an "active" flag. ``deactivate`` clears the
    flag but leaves the entry until the owning processor exits, so a drain
    that is still finishing its in-flight task is never joined by a second
    drain.

    Asking for a drain while one still owns the job (``try_register`` or
    ``reclaim``) marks the job reclaimed and re-activates it. The owning drain
    then calls ``finish`` instead of leaving outright: ``finish`` refuses to
    drop a reclaimed entry, and the drain goes round again to pick up the
    work that was handed to it.

    Entries live in memory only and do not survive a restart.
    """

    def __init__(self):
        self._active: dict[int, bool] = {}
        self._reclaimed: set[int] = set()
        self._lock = threading.Lock()

    def try_register(self, job_id: int) -> bool:
        """Return True if this call activated the job and the caller now owns its drain."""
        with self._lock:
            if job_id not in self._active:
                self._active[job_id] = True
                return True
            self._reclaim(job_id)
            return False

    def reclaim(self, job_id: int) -> bool:
        """Hand new work to the job's running drain. False if no drain owns the job."""
        with self._lock:
            if job_id not in self._active:
                return False
            self._reclaim(job_id)
            return True

    def _reclaim(self, job_id: int) -> None:
        if not self._active[job_id]:
            logger.info(f"Job {job_id} re-activated while its drain was winding down")
        self._active[job_id] = True
        self._reclaimed.add(job_id)

    def is_active(self, job_id: int) -> bool:
        with self._lock:
            return self._active.get(job_id, False)

    def is_running(self, job_id: int) -> bool:
        """True while a processor owns the job, even if it was asked to stop."""
        with self._lock:
            return job_id in self._active

    def deactivate(self, job_id: int) -> None:
        """Ask the job's drain to stop at its next loop boundary."""
        with self._lock:
            if job_id in self._active:
                self._active[job_id] = False
                self._reclaimed.discard(job_id)

    def finish(self, job_id: int) -> bool:
        """
        Drop the job's entry unless it was reclaimed since the last call.

        Returns:
            True if the entry was dropped, False if the drain must keep going
        """
        with self._lock:
            if job_id in self._reclaimed:
                self._reclaimed.discard(job_id)
                return False
            self._active.pop(job_id, None)
            return True

    def release(self, job_id: int) -> None:
        """Drop the job's entry unconditionally; used when a drain dies."""
        with self._lock:
            self._active.pop(job_id, None)
            self._reclaimed.discard(job_id)

    def active_jobs(self) -> list[int]:
        with self._lock:
            return [job_id for job_id, active in self._active.items() if active]
