"""
Application factory for kiwirec Web.

Wires together the job manager, blueprints, error handling, and request middleware.
"""
from __future__ import annotations

import atexit
import traceback as tb
from datetime import datetime, timezone
from time import perf_counter, time
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from kiwirec.job.errors import NoAvailableSlots, NotFound, ValidationError
from kiwirec.job.manager import JobManager
from kiwirec.util.logging import get_logger
from kiwirec_web.jobs import build_manager, init_manager

logger = get_logger(__name__)

ERROR_RING_MAX = 100


def create_app(manager: Optional[JobManager] = None, *, start_scheduler: bool = True) -> Flask:
    """Create and configure the Flask application.

    Args:
        manager: Pre-built JobManager (tests inject one); built from config if None.
        start_scheduler: Start the periodic run check and stop every capture
            process at interpreter exit. Tests pass False and tick by hand.
    """
    app = Flask(__name__)

    # ------------------------------------------------------------------
    # App-level state
    # ------------------------------------------------------------------
    if manager is None:
        manager = build_manager()
    init_manager(app, manager)
    app._started_at = time()

    if start_scheduler:
        manager.start()
        atexit.register(manager.shutdown)

    # ------------------------------------------------------------------
    # Error ring buffer (exposed via api_debug blueprint)
    # ------------------------------------------------------------------
    app._error_ring = []
    app._error_ring_max = ERROR_RING_MAX

    # ------------------------------------------------------------------
    # Request timing middleware
    # ------------------------------------------------------------------

    @app.before_request
    def log_request_start():
        request._start_time = perf_counter()

    @app.after_request
    def log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = (perf_counter() - request._start_time) * 1000
            # Log slow requests (>500ms) or errors at debug level
            if duration_ms > 500 or response.status_code >= 400:
                logger.debug(
                    "%s %s -> %d (%.1fms)",
                    request.method,
                    request.path,
                    response.status_code,
                    duration_ms,
                )
        return response

    # ------------------------------------------------------------------
    # Error handlers
    # ------------------------------------------------------------------

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return (
            jsonify({"error": "invalid_settings", "message": str(exc), "errors": exc.errors}),
            400,
        )

    @app.errorhandler(NotFound)
    def handle_not_found(exc: NotFound):
        return (jsonify({"error": "not_found", "message": str(exc)}), 404)

    @app.errorhandler(NoAvailableSlots)
    def handle_no_slots(exc: NoAvailableSlots):
        return (jsonify({"error": "no_available_slots", "message": str(exc)}), 409)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        code = exc.code or 500
        name = (exc.name or "error").lower().replace(" ", "_")
        return (jsonify({"error": name, "message": exc.description}), code)

    @app.errorhandler(Exception)
    def capture_error_to_ring(exc: Exception):
        entry = {
            "ts": datetime.now(timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "path": request.path,
            "method": request.method,
            "error": str(exc),
            "type": type(exc).__name__,
            "traceback": tb.format_exc(),
        }
        app._error_ring.append(entry)
        while len(app._error_ring) > app._error_ring_max:
            app._error_ring.pop(0)
        logger.error("unhandled error on %s %s: %s", request.method, request.path, exc)
        return (jsonify({"error": "internal_error", "message": str(exc)}), 500)

    # ------------------------------------------------------------------
    # Register blueprints
    # ------------------------------------------------------------------
    from kiwirec_web.blueprints.api_debug import bp as api_debug_bp
    from kiwirec_web.blueprints.api_recorder import bp as api_recorder_bp

    app.register_blueprint(api_recorder_bp)
    app.register_blueprint(api_debug_bp)

    return app
