"""JobManager: the single entry point the HTTP layer talks to.

Wires the store, supervisor, scheduler, and status façade together and owns
their lifecycle. Request handlers call the public methods here and never
touch the collaborators directly.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from kiwirec.job.command import CaptureToolConfig
from kiwirec.job.model import DEFAULT_LOG_CAP, RecorderSettings
from kiwirec.job.scheduler import DEFAULT_TICK_SECONDS, Scheduler
from kiwirec.job.status import StatusFacade
from kiwirec.job.store import JobStore
from kiwirec.job.supervisor import DEFAULT_STOP_GRACE, CommandBuilder, ProcessSupervisor
from kiwirec.job.validator import parse_settings
from kiwirec.util.logging import get_logger
from kiwirec.util.time import Clock

logger = get_logger(__name__)

DEFAULT_MAX_JOBS = 3


class JobManager:
    def __init__(
        self,
        *,
        tool_config: Optional[CaptureToolConfig] = None,
        max_jobs: int = DEFAULT_MAX_JOBS,
        log_cap: int = DEFAULT_LOG_CAP,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        stop_grace: float = DEFAULT_STOP_GRACE,
        clock: Optional[Clock] = None,
        command_builder: Optional[CommandBuilder] = None,
    ) -> None:
        self.max_jobs = max_jobs
        self.store = JobStore(log_cap=log_cap, clock=clock)
        self.supervisor = ProcessSupervisor(
            self.store,
            config=tool_config,
            command_builder=command_builder,
            stop_grace=stop_grace,
        )
        self.scheduler = Scheduler(self.store, self.supervisor, clock=clock, tick_seconds=tick_seconds)
        self.status = StatusFacade(self.store)

    # ---- lifecycle ----
    def start(self) -> None:
        self.scheduler.start()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        self.supervisor.stop_all()

    # ---- job lifecycle ----
    def create_job(self, settings: RecorderSettings) -> Dict[str, Any]:
        """Register a job and start its first run immediately.

        Raises:
            ValidationError: settings outside receiver limits.
            NoAvailableSlots: ``max_jobs`` jobs already exist.
        """
        job = self.store.create(settings, limit=self.max_jobs)
        logger.info("job created: %s", settings, extra={"job_id": job.job_id, "job_uid": job.job_uid})
        self.scheduler.start_run(job.job_id)
        return self.status.snapshot(job.job_id)

    def start_job(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate a raw request body and create the job it describes."""
        return self.create_job(parse_settings(payload))

    def list_jobs(self) -> List[Dict[str, Any]]:
        return self.status.snapshot_all()

    def get_job(self, job_id: int) -> Dict[str, Any]:
        return self.status.snapshot(job_id)

    def stop_job(self, job_id: int) -> Dict[str, Any]:
        """Stop the current run of a job but keep the job (and its schedule)."""
        job = self.store.get(job_id)
        if self.supervisor.stop(job_id):
            self.store.append_log(job_id, "<Stopped manually>")
            logger.info("run stopped by operator", extra={"job_id": job_id, "job_uid": job.job_uid})
        return self.status.snapshot(job_id)

    def remove_job(self, job_id: int) -> None:
        """Kill any live process for the job, then drop the record.

        Raises:
            NotFound: unknown job id.
        """
        job = self.store.remove(job_id, before_delete=self._finalize)
        logger.info("job removed", extra={"job_id": job_id, "job_uid": job.job_uid})

    def _finalize(self, job_id: int) -> None:
        self.scheduler.cancel(job_id)
        self.supervisor.stop(job_id)

    # ---- introspection ----
    def running_count(self) -> int:
        return len(self.supervisor.active_job_ids())

    def job_count(self) -> int:
        return len(self.store)
