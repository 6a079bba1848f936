"""
Configuration constants and environment parsing for kiwirec Web.

All KIWIREC_* environment variables are parsed here and exported as module-level
constants. The app factory and CLI import from this module rather than reading
os.environ directly; the core job package only ever receives plain values.
"""
from __future__ import annotations

import os
from typing import Any, Dict

from kiwirec.job.command import CaptureToolConfig


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    """Parse an integer from environment, returning default on missing/invalid."""
    val = os.getenv(name)
    if not val:
        return default
    try:
        return max(minimum, int(float(val)))
    except Exception:
        return default


def _float_env(name: str, default: float) -> float:
    """Parse a float from environment, returning default on missing/invalid."""
    val = os.getenv(name)
    if not val:
        return default
    try:
        return float(val)
    except Exception:
        return default


# ---------------------------------------------------------------------------
# HTTP server
# ---------------------------------------------------------------------------
HOST: str = os.getenv("KIWIREC_HOST", "0.0.0.0")
"""Interface the API binds to (the reverse proxy forwards /api/* here)."""

PORT: int = _int_env("KIWIREC_PORT", 5004, minimum=1)
"""Port the API listens on."""

SERVICE_URL: str = os.getenv("KIWIREC_URL", f"http://127.0.0.1:{PORT}")
"""Base URL the control CLI uses to reach a running service."""


# ---------------------------------------------------------------------------
# Job limits & scheduling
# ---------------------------------------------------------------------------
MAX_JOBS: int = _int_env("KIWIREC_MAX_JOBS", 3)
"""Maximum number of jobs that may exist at once (0 = unlimited)."""

LOG_CAP: int = _int_env("KIWIREC_LOG_CAP", 1000, minimum=1)
"""Per-job log buffer size; oldest lines are evicted past this."""

TICK_SECONDS: float = _float_env("KIWIREC_TICK_SECONDS", 1.0)
"""Period of the scheduler's due-run check."""

STOP_GRACE_SECONDS: float = _float_env("KIWIREC_STOP_GRACE_SECONDS", 5.0)
"""Time a capture process gets to exit after SIGTERM before SIGKILL."""


# ---------------------------------------------------------------------------
# Capture tool
# ---------------------------------------------------------------------------
PYTHON_EXE: str = os.getenv("KIWIREC_PYTHON", "python3")
KIWICLIENT_DIR: str = os.getenv("KIWIREC_KIWICLIENT_DIR", "/usr/local/src/kiwiclient")
SDR_HOST: str = os.getenv("KIWIREC_SDR_HOST", "127.0.0.1")
SDR_PORT: int = _int_env("KIWIREC_SDR_PORT", 8073, minimum=1)
OUTPUT_DIR: str = os.getenv("KIWIREC_OUTPUT_DIR", "/var/recorder/recorded-files/")


def capture_tool_config() -> CaptureToolConfig:
    return CaptureToolConfig(
        python_exe=PYTHON_EXE,
        workdir=KIWICLIENT_DIR,
        sdr_host=SDR_HOST,
        sdr_port=SDR_PORT,
        output_dir=OUTPUT_DIR,
    )


def effective_config() -> Dict[str, Any]:
    """Snapshot of the settings above, for the debug endpoint."""
    return {
        "host": HOST,
        "port": PORT,
        "max_jobs": MAX_JOBS,
        "log_cap": LOG_CAP,
        "tick_seconds": TICK_SECONDS,
        "stop_grace_seconds": STOP_GRACE_SECONDS,
        "python": PYTHON_EXE,
        "kiwiclient_dir": KIWICLIENT_DIR,
        "sdr_host": SDR_HOST,
        "sdr_port": SDR_PORT,
        "output_dir": OUTPUT_DIR,
    }
