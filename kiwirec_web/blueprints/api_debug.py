"""
Debug and observability API blueprint for kiwirec Web.

Provides endpoints for health checks, effective configuration, and the
ring buffer of unhandled request errors.
"""
from __future__ import annotations

from time import time

from flask import Blueprint, current_app, jsonify, request

from kiwirec_web.config import effective_config
from kiwirec_web.jobs import get_manager

bp = Blueprint("api_debug", __name__)


@bp.get("/api/debug/health")
def api_debug_health():
    """Service health: uptime, job counts, and scheduler liveness."""
    manager = get_manager()
    return jsonify(
        {
            "status": "ok",
            "uptime_s": round(time() - current_app._started_at, 1),
            "jobs": manager.job_count(),
            "running": manager.running_count(),
            "scheduler_alive": manager.scheduler.is_alive(),
        }
    )


@bp.get("/api/debug/errors")
def api_debug_errors():
    """Most recent unhandled errors, newest last."""
    limit = request.args.get("limit", type=int) or current_app._error_ring_max
    ring = current_app._error_ring
    return jsonify({"errors": ring[-limit:], "count": len(ring)})


@bp.get("/api/debug/config")
def api_debug_config():
    """Effective KIWIREC_* configuration."""
    return jsonify(effective_config())
