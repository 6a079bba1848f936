"""Read-only job views in the shape the recorder web page polls for."""

from __future__ import annotations

from typing import Any, Dict, List

from kiwirec.job.model import Job
from kiwirec.job.store import JobStore

LIST_LOG_COUNT = 20
LIST_LOG_MAX_LENGTH = 200


def job_view(job: Job, *, full_logs: bool = False) -> Dict[str, Any]:
    """Serialize a job snapshot.

    The list view carries only the newest ``LIST_LOG_COUNT`` entries (newest
    first, each clipped to ``LIST_LOG_MAX_LENGTH`` characters); the detail view
    carries the whole buffer in chronological order.
    """
    if full_logs:
        logs = [entry.to_dict() for entry in job.logs.entries()]
    else:
        logs = [entry.to_dict(LIST_LOG_MAX_LENGTH) for entry in job.logs.tail(LIST_LOG_COUNT)]
    return {
        "job_id": job.job_id,
        "job_uid": job.job_uid,
        "running": job.running,
        "started_at": job.started_at,
        "next_run_start": job.next_run_start,
        "logs": logs,
        "settings": job.settings.to_dict(),
    }


class StatusFacade:
    def __init__(self, store: JobStore) -> None:
        self.store = store

    def snapshot_all(self) -> List[Dict[str, Any]]:
        return [job_view(job) for job in self.store.list()]

    def snapshot(self, job_id: int) -> Dict[str, Any]:
        """Detail view with full logs. Raises NotFound for unknown ids."""
        return job_view(self.store.get(job_id), full_logs=True)
