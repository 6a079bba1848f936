"""Documented exit codes for the kiwirec control CLI.

Exit codes follow UNIX conventions:
- 0: Success
- 1: General/unspecified error
- 2: Invalid command-line arguments or rejected recorder settings
- 3-4: Application-specific errors

Usage:
    from kiwirec.util.exit_codes import ExitCode
    sys.exit(ExitCode.JOB_NOT_FOUND)
"""

from __future__ import annotations


class ExitCode:
    """Exit code constants for kiwirec processes.

    Attributes:
        SUCCESS: Normal termination, no errors.
        GENERAL_ERROR: Unspecified runtime error.
        INVALID_ARGS: Arguments or recorder settings failed validation.
        JOB_NOT_FOUND: Requested job id does not exist.
        SERVICE_UNAVAILABLE: The recorder service could not be reached.
    """

    SUCCESS: int = 0
    GENERAL_ERROR: int = 1
    INVALID_ARGS: int = 2
    JOB_NOT_FOUND: int = 3
    SERVICE_UNAVAILABLE: int = 4

    @classmethod
    def message(cls, code: int) -> str:
        """Return a human-readable message for an exit code."""
        messages = {
            cls.SUCCESS: "Success",
            cls.GENERAL_ERROR: "General error",
            cls.INVALID_ARGS: "Invalid arguments",
            cls.JOB_NOT_FOUND: "Job not found",
            cls.SERVICE_UNAVAILABLE: "Recorder service unavailable",
        }
        return messages.get(code, f"Unknown exit code {code}")
