"""
Blueprints package for kiwirec Web.

This package contains Flask blueprints that organize routes by function:
- api_recorder: Recorder job endpoints (/api/, /api/recorder/*)
- api_debug: Debug and observability endpoints (/api/debug/*)
"""
from __future__ import annotations
