"""
kiwirec Web: Flask API for KiwiSDR recording jobs.

This package provides the JSON API that:
- Accepts recorder start requests and validates them against receiver limits
- Serves live job status and per-job logs to the polling recorder page
- Stops and removes jobs, killing their capture processes

Usage:
    from kiwirec_web import create_app
    app = create_app()
    app.run(host="0.0.0.0", port=5004)
"""
from __future__ import annotations

__version__ = "0.1.0"

from kiwirec_web.app import create_app

__all__ = ["create_app", "__version__"]
