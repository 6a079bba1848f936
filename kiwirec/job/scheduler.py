"""Run scheduling for one-shot and recurring recording jobs.

Per job state machine::

    PENDING --start--> RUNNING --exit, recurring--> WAITING --due--> RUNNING
                          \\--exit, one-shot--> TERMINATED

The deadline logic is pure (:func:`next_run_after`, :func:`is_due`); the
:class:`Scheduler` applies it to the store on every tick of a background
thread, with the clock injected so tests can drive time by hand.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from typing import DefaultDict, List, Optional

from kiwirec.job.errors import NotFound
from kiwirec.job.model import Job, JobState, RecorderSettings
from kiwirec.job.store import JobStore
from kiwirec.job.supervisor import ProcessSupervisor, RunOutcome
from kiwirec.util.logging import get_logger, log_exception
from kiwirec.util.time import Clock

logger = get_logger(__name__)

DEFAULT_TICK_SECONDS = 1.0


def next_run_after(started_at: int, settings: RecorderSettings) -> Optional[int]:
    """Start of the next run, or None for one-shot jobs.

    Spacing by ``max(interval, duration)`` keeps runs of one job from
    overlapping even when the interval is shorter than a capture.
    """
    if not settings.is_recurring:
        return None
    return started_at + max(settings.interval or 0, settings.duration)


def is_due(job: Job, now: float) -> bool:
    """True once a waiting job's deadline has passed, however late the check."""
    return (
        job.state is JobState.WAITING
        and not job.running
        and not job.removed
        and job.next_run_start is not None
        and now >= job.next_run_start
    )


class Scheduler:
    def __init__(
        self,
        store: JobStore,
        supervisor: ProcessSupervisor,
        *,
        clock: Optional[Clock] = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        self.store = store
        self.supervisor = supervisor
        self.clock = clock or time.time
        self.tick_seconds = tick_seconds
        self._launch_locks: DefaultDict[int, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _launch_lock(self, job_id: int) -> threading.Lock:
        with self._locks_guard:
            return self._launch_locks[job_id]

    # ---- transitions ----
    def start_run(self, job_id: int) -> bool:
        """PENDING/WAITING -> RUNNING: stamp the job and hand it to the supervisor.

        Returns False if the job is gone, removed, terminated, or already running.
        """
        now = int(self.clock())

        def _begin(job: Job) -> Optional[Job]:
            if job.removed or job.running or job.state in (JobState.RUNNING, JobState.TERMINATED):
                return None
            job.state = JobState.RUNNING
            job.running = True
            job.started_at = now
            job.next_run_start = None
            job.push_log(now, "<Started>")
            job.push_log(now, f"<Settings>  {job.settings}")
            return job.snapshot()

        with self._launch_lock(job_id):
            try:
                snapshot = self.store.update(job_id, _begin)
            except NotFound:
                return False
            if snapshot is None:
                return False
            self.supervisor.launch(snapshot, self.on_run_exit)
        return True

    def on_run_exit(self, job_id: int, outcome: RunOutcome) -> None:
        """RUNNING -> WAITING (recurring) or TERMINATED (one-shot)."""

        def _settle(job: Job) -> JobState:
            job.running = False
            if job.removed:
                job.state = JobState.TERMINATED
                job.next_run_start = None
            elif job.settings.is_recurring and job.started_at is not None:
                job.state = JobState.WAITING
                job.next_run_start = next_run_after(job.started_at, job.settings)
            else:
                job.state = JobState.TERMINATED
                job.next_run_start = None
            return job.state

        try:
            state = self.store.update(job_id, _settle)
        except NotFound:
            return
        logger.debug("job settled in %s after %s", state.value, outcome.result.value,
                     extra={"job_id": job_id, "outcome": outcome.result.value})

    def cancel(self, job_id: int) -> None:
        """Block new launches for a job that is being removed.

        Taking the launch lock waits out any launch in progress, so once this
        returns the supervisor holds every process the job will ever have.
        """
        with self._launch_lock(job_id):
            try:
                self.store.mark_removed(job_id)
            except NotFound:
                pass
        with self._locks_guard:
            self._launch_locks.pop(job_id, None)

    # ---- periodic check ----
    def tick(self) -> List[int]:
        """Start every waiting job whose deadline has passed. Returns their ids."""
        now = self.clock()
        started: List[int] = []
        for job in self.store.list():
            if not is_due(job, now):
                continue
            try:
                if self.start_run(job.job_id):
                    started.append(job.job_id)
            except Exception:
                log_exception(logger, "failed to start scheduled run", error_type="scheduler_tick",
                              job_id=job.job_id, job_uid=job.job_uid)
        return started

    def _loop(self) -> None:
        logger.info("scheduler started (tick %.1fs)", self.tick_seconds)
        while not self._stop_event.wait(self.tick_seconds):
            try:
                self.tick()
            except Exception:
                log_exception(logger, "scheduler tick failed", error_type="scheduler_tick")
        logger.info("scheduler stopped")

    def start(self) -> None:
        if self.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="job-scheduler", daemon=True)
        self._thread.start()

    def shutdown(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
