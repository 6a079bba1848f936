"""Launch, drain, and reap capture processes.

Each run owns one child process and one reader thread. The reader drains the
child's combined stdout/stderr line by line into the job's log through
``JobStore.append_log``, waits for the exit status, records the final log
line, clears ``running``, and reports a :class:`RunOutcome` to the callback
supplied at launch. Process handles never leave this module.
"""

from __future__ import annotations

import subprocess
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from kiwirec.job.command import CaptureToolConfig, build_command
from kiwirec.job.errors import JobError, NotFound, ProcessExitError, ProcessSpawnError
from kiwirec.job.model import Job
from kiwirec.job.store import JobStore
from kiwirec.util.logging import get_logger, log_exception

logger = get_logger(__name__)

DEFAULT_STOP_GRACE = 5.0


class RunResult(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    KILLED = "killed"


@dataclass(frozen=True)
class RunOutcome:
    result: RunResult
    exit_code: Optional[int] = None
    error: Optional[JobError] = None

    @classmethod
    def from_returncode(cls, returncode: int, *, stopping: bool = False) -> "RunOutcome":
        if stopping or returncode < 0:
            return cls(RunResult.KILLED, returncode)
        if returncode == 0:
            return cls(RunResult.SUCCESS, 0)
        return cls(RunResult.FAILED, returncode, ProcessExitError(returncode))

    @classmethod
    def spawn_failed(cls, error: ProcessSpawnError) -> "RunOutcome":
        return cls(RunResult.FAILED, None, error)

    def log_line(self) -> str:
        if isinstance(self.error, ProcessSpawnError):
            return f"<Spawn failed> {self.error}"
        if self.result is RunResult.KILLED:
            if self.exit_code is not None and self.exit_code < 0:
                return f"<Killed> signal {-self.exit_code}"
            return "<Killed>"
        return f"<Exited> code {self.exit_code}"


ExitCallback = Callable[[int, RunOutcome], None]
CommandBuilder = Callable[[Job, float], List[str]]


@dataclass
class RunHandle:
    job_id: int
    job_uid: str
    command: List[str]
    proc: subprocess.Popen
    stopping: bool = False
    done: threading.Event = field(default_factory=threading.Event)
    reader: Optional[threading.Thread] = None

    @property
    def pid(self) -> int:
        return self.proc.pid


def terminate_process(proc: subprocess.Popen, grace: float) -> int:
    """SIGTERM, wait up to ``grace`` seconds, then SIGKILL. Returns the exit code."""
    if proc.poll() is not None:
        return proc.returncode
    try:
        proc.terminate()
    except ProcessLookupError:
        return proc.wait()
    try:
        return proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.warning("pid %s ignored SIGTERM for %.1fs; killing", proc.pid, grace)
        proc.kill()
        return proc.wait()


class ProcessSupervisor:
    def __init__(
        self,
        store: JobStore,
        *,
        config: Optional[CaptureToolConfig] = None,
        command_builder: Optional[CommandBuilder] = None,
        stop_grace: float = DEFAULT_STOP_GRACE,
    ) -> None:
        self.store = store
        self.config = config or CaptureToolConfig()
        self.stop_grace = stop_grace
        self._command_builder = command_builder or self._default_command
        self._lock = threading.Lock()
        self._runs: Dict[int, RunHandle] = {}

    def _default_command(self, job: Job, started_at: float) -> List[str]:
        return build_command(job.settings, job_uid=job.job_uid, started_at=started_at, config=self.config)

    # ---- queries ----
    def is_running(self, job_id: int) -> bool:
        with self._lock:
            return job_id in self._runs

    def active_job_ids(self) -> List[int]:
        with self._lock:
            return list(self._runs)

    # ---- launch ----
    def _spawn(self, cmd: List[str]) -> subprocess.Popen:
        popen_kwargs = {
            "stdout": subprocess.PIPE,
            "stderr": subprocess.STDOUT,
            "stdin": subprocess.DEVNULL,
            "text": True,
            "errors": "replace",
            "bufsize": 1,
        }
        if self.config.workdir:
            popen_kwargs["cwd"] = self.config.workdir
        try:
            return subprocess.Popen(cmd, **popen_kwargs)
        except OSError as exc:
            raise ProcessSpawnError(cmd, exc) from exc

    def launch(self, job: Job, on_exit: ExitCallback) -> Optional[RunHandle]:
        """Start one capture run for ``job``.

        Returns the run handle, or None if the tool could not be spawned (the
        failure is already logged into the job and reported to ``on_exit``).
        A job that already has a live process is never launched twice.
        """
        with self._lock:
            existing = self._runs.get(job.job_id)
        if existing is not None:
            logger.warning("job already has a live process (pid %s)", existing.pid,
                           extra={"job_id": job.job_id, "job_uid": job.job_uid})
            return existing

        started_at = job.started_at if job.started_at is not None else time.time()
        cmd = self._command_builder(job, started_at)
        try:
            proc = self._spawn(cmd)
        except ProcessSpawnError as exc:
            logger.error("spawn failed: %s", exc, extra={"job_id": job.job_id, "job_uid": job.job_uid})
            self._finish(job.job_id, RunOutcome.spawn_failed(exc), on_exit)
            return None

        handle = RunHandle(job_id=job.job_id, job_uid=job.job_uid, command=cmd, proc=proc)
        with self._lock:
            self._runs[job.job_id] = handle
        handle.reader = threading.Thread(
            target=self._drain,
            args=(handle, on_exit),
            name=f"capture-{job.job_id}",
            daemon=True,
        )
        handle.reader.start()
        logger.info("launched pid %s: %s", proc.pid, " ".join(cmd),
                    extra={"job_id": job.job_id, "job_uid": job.job_uid})
        return handle

    def _append(self, job_id: int, line: str) -> None:
        try:
            self.store.append_log(job_id, line)
        except NotFound:
            pass

    def _drain(self, handle: RunHandle, on_exit: ExitCallback) -> None:
        try:
            for line in handle.proc.stdout:
                line = line.rstrip("\r\n")
                if line:
                    self._append(handle.job_id, line)
            returncode = handle.proc.wait()
            outcome = RunOutcome.from_returncode(returncode, stopping=handle.stopping)
        except Exception:
            log_exception(logger, "output reader failed", error_type="reader",
                          job_id=handle.job_id, job_uid=handle.job_uid)
            returncode = terminate_process(handle.proc, self.stop_grace)
            outcome = RunOutcome.from_returncode(returncode, stopping=True)
        finally:
            handle.proc.stdout.close()

        with self._lock:
            if self._runs.get(handle.job_id) is handle:
                del self._runs[handle.job_id]
        logger.info("run finished: %s (code %s)", outcome.result.value, outcome.exit_code,
                    extra={"job_id": handle.job_id, "job_uid": handle.job_uid,
                           "outcome": outcome.result.value, "exit_code": outcome.exit_code})
        self._finish(handle.job_id, outcome, on_exit)
        handle.done.set()

    def _finish(self, job_id: int, outcome: RunOutcome, on_exit: ExitCallback) -> None:
        ts = self.store.now()

        def _exited(job: Job) -> None:
            job.running = False
            job.push_log(ts, outcome.log_line())

        try:
            self.store.update(job_id, _exited)
        except NotFound:
            return
        try:
            on_exit(job_id, outcome)
        except Exception:
            log_exception(logger, "exit callback failed", error_type="on_exit", job_id=job_id)

    # ---- stop ----
    def stop(self, job_id: int, grace: Optional[float] = None) -> bool:
        """Terminate the live process for ``job_id`` and wait for its reaper.

        Returns True only if a live child was signalled. A child that already
        exited on its own keeps its real outcome; the call still waits for its
        reader so the job is settled on return.
        """
        with self._lock:
            handle = self._runs.get(job_id)
        if handle is None:
            return False
        grace = self.stop_grace if grace is None else grace
        if handle.proc.poll() is None:
            handle.stopping = True
            terminate_process(handle.proc, grace)
        if not handle.done.wait(timeout=grace + 5.0):
            logger.warning("reader for pid %s did not finish", handle.pid,
                           extra={"job_id": job_id, "job_uid": handle.job_uid})
        return handle.stopping

    def stop_all(self, grace: Optional[float] = None) -> None:
        for job_id in self.active_job_ids():
            self.stop(job_id, grace)
