#!/usr/bin/env python3
"""
kiwirec Control: entry point.

Thin shim around kiwirec.cli that runs the recorder API or talks to a
running instance.

Run:
    python kiwirec-control.py serve --port 5004
    python kiwirec-control.py start --type png --freq-khz 7100 --zoom 5 --duration 30s --interval 10m
    python kiwirec-control.py list

Environment:
    KIWIREC_URL               Service URL for client commands (default http://127.0.0.1:5004)
    KIWIREC_KIWICLIENT_DIR    kiwiclient checkout holding kiwirecorder.py
    KIWIREC_MAX_JOBS          Concurrent job limit (default 3, 0 = unlimited)
"""
from __future__ import annotations

import sys

from kiwirec.cli import main

if __name__ == "__main__":
    sys.exit(main())
