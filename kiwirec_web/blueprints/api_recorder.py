"""
Recorder job API blueprint for kiwirec Web.

Provides the endpoints polled by the recorder page: liveness, job list and
detail (with logs), start, stop, and remove. Job errors raised by the manager
are turned into JSON responses by the handlers registered in the app factory.
"""
from __future__ import annotations

from flask import Blueprint, Response, abort, jsonify, request

from kiwirec_web.jobs import get_manager

bp = Blueprint("api_recorder", __name__)


# ---------------------------------------------------------------------------
# Liveness
# ---------------------------------------------------------------------------


@bp.get("/api/")
def api_online():
    """Plain-text liveness probe used for the online/offline indicator."""
    return Response("Online", mimetype="text/plain")


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@bp.get("/api/recorder/status")
def recorder_status_all():
    """List every job with its most recent log lines."""
    return jsonify(get_manager().list_jobs())


@bp.get("/api/recorder/status/<int:job_id>")
def recorder_status_one(job_id: int):
    """Get one job including its full log buffer."""
    return jsonify(get_manager().get_job(job_id))


# ---------------------------------------------------------------------------
# Start / stop / remove
# ---------------------------------------------------------------------------


@bp.post("/api/recorder/start")
def start_recorder():
    """Validate the settings and create a job; its first run starts immediately."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    return jsonify(get_manager().start_job(payload))


@bp.post("/api/recorder/stop/<int:job_id>")
def stop_recorder(job_id: int):
    """Stop the current run of a job without removing it."""
    return jsonify(get_manager().stop_job(job_id))


@bp.delete("/api/recorder/<int:job_id>")
def remove_recorder(job_id: int):
    """Kill any live capture for the job and delete it."""
    get_manager().remove_job(job_id)
    return jsonify({"message": "Recorder deleted successfully"})
