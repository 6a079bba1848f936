"""
Job manager wiring for kiwirec Web.

Builds the JobManager from configuration and stores it on the Flask app so
blueprints can reach it through get_manager().
"""
from __future__ import annotations

from flask import Flask, current_app

from kiwirec.job.manager import JobManager
from kiwirec_web.config import (
    LOG_CAP,
    MAX_JOBS,
    STOP_GRACE_SECONDS,
    TICK_SECONDS,
    capture_tool_config,
)

EXTENSION_KEY = "kiwirec_manager"


def build_manager() -> JobManager:
    """Create a JobManager from the KIWIREC_* configuration."""
    return JobManager(
        tool_config=capture_tool_config(),
        max_jobs=MAX_JOBS,
        log_cap=LOG_CAP,
        tick_seconds=TICK_SECONDS,
        stop_grace=STOP_GRACE_SECONDS,
    )


def init_manager(app: Flask, manager: JobManager) -> None:
    app.extensions[EXTENSION_KEY] = manager


def get_manager() -> JobManager:
    """Get the JobManager instance from the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]
