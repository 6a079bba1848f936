"""Error kinds raised by the recording job manager."""

from __future__ import annotations

from typing import Iterable, List, Optional


class JobError(Exception):
    """Base class for recorder job errors."""


class ValidationError(JobError):
    """Recorder settings were rejected; carries every violation message."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid settings")


class NotFound(JobError):
    def __init__(self, job_id: object) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class NoAvailableSlots(JobError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__("All recorder slots are full")


class ProcessSpawnError(JobError):
    """The capture tool could not be launched (missing binary, permissions...)."""

    def __init__(self, command: List[str], cause: OSError) -> None:
        self.command = command
        self.cause = cause
        program = command[0] if command else "<empty command>"
        super().__init__(f"could not launch {program}: {cause}")


class ProcessExitError(JobError):
    """The capture tool exited with a non-zero status."""

    def __init__(self, exit_code: Optional[int]) -> None:
        self.exit_code = exit_code
        super().__init__(f"capture tool exited with code {exit_code}")
