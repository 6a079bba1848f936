"""In-memory table of recording jobs.

Concurrency discipline: one registry lock guards the id counter, the issued
uid set, and the ``job_id -> record`` mapping; every record carries its own
lock that serializes mutation of that job. Distinct jobs never contend on
each other's lock, and readers only ever receive snapshots copied under the
record lock, so they cannot observe a half-applied update.
"""

from __future__ import annotations

import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, TypeVar

from kiwirec.job.errors import NoAvailableSlots, NotFound, ValidationError
from kiwirec.job.model import DEFAULT_LOG_CAP, Job, LogBuffer, RecorderSettings, generate_uid
from kiwirec.job.validator import validate_settings
from kiwirec.util.time import Clock

T = TypeVar("T")
Mutator = Callable[[Job], T]


@dataclass
class _JobRecord:
    job: Job
    lock: threading.Lock = field(default_factory=threading.Lock)


class JobStore:
    def __init__(
        self,
        *,
        log_cap: int = DEFAULT_LOG_CAP,
        uid_factory: Callable[[], str] = generate_uid,
        clock: Optional[Clock] = None,
    ) -> None:
        self.log_cap = log_cap
        self._uid_factory = uid_factory
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._issued_uids: Set[str] = set()
        self._records: Dict[int, _JobRecord] = {}

    # ---- creation ----
    def _next_uid(self) -> str:
        # caller holds self._lock
        while True:
            uid = self._uid_factory()
            if uid not in self._issued_uids:
                self._issued_uids.add(uid)
                return uid

    def create(self, settings: RecorderSettings, *, limit: int = 0) -> Job:
        """Validate ``settings`` and register a new pending job.

        ``limit`` caps the number of live jobs (0 = unlimited); the check and
        the insertion happen under the same lock.

        Raises:
            ValidationError: if the settings violate receiver limits.
            NoAvailableSlots: if ``limit`` jobs already exist.
        """
        errors = validate_settings(settings)
        if errors:
            raise ValidationError(errors)

        with self._lock:
            if limit and len(self._records) >= limit:
                raise NoAvailableSlots(limit)
            job = Job(
                job_id=next(self._ids),
                job_uid=self._next_uid(),
                settings=settings,
                logs=LogBuffer(self.log_cap),
            )
            record = _JobRecord(job)
            self._records[job.job_id] = record
            with record.lock:
                return job.snapshot()

    # ---- reads ----
    def _record(self, job_id: int) -> _JobRecord:
        with self._lock:
            record = self._records.get(job_id)
        if record is None:
            raise NotFound(job_id)
        return record

    def get(self, job_id: int) -> Job:
        record = self._record(job_id)
        with record.lock:
            return record.job.snapshot()

    def list(self) -> List[Job]:
        with self._lock:
            records = list(self._records.values())
        snapshots = []
        for record in records:
            with record.lock:
                snapshots.append(record.job.snapshot())
        return snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._records

    # ---- mutation ----
    def update(self, job_id: int, mutator: Mutator[T]) -> T:
        """Apply ``mutator`` to the live job under its lock; return its result.

        This is the only path that mutates a stored job. Mutators must be
        short and must not call back into the store.
        """
        record = self._record(job_id)
        with record.lock:
            return mutator(record.job)

    def append_log(self, job_id: int, data: str) -> None:
        ts = int(self._clock())
        self.update(job_id, lambda job: job.push_log(ts, data))

    def now(self) -> int:
        return int(self._clock())

    def mark_removed(self, job_id: int) -> Job:
        """Flag a job as being removed; it keeps no future schedule."""

        def _mark(job: Job) -> Job:
            job.removed = True
            job.next_run_start = None
            return job.snapshot()

        return self.update(job_id, _mark)

    def delete(self, job_id: int) -> None:
        with self._lock:
            if self._records.pop(job_id, None) is None:
                raise NotFound(job_id)

    def remove(self, job_id: int, before_delete: Optional[Callable[[int], None]] = None) -> Job:
        """Mark, finalize, then delete a job.

        ``before_delete`` runs after the job is flagged as removed and before
        the record disappears; the manager uses it to stop the live process.
        """
        snapshot = self.mark_removed(job_id)
        if before_delete is not None:
            before_delete(job_id)
        self.delete(job_id)
        return snapshot
