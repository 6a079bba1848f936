#!/usr/bin/env python3
"""kiwirec control CLI: run the API service or drive a running one."""

from __future__ import annotations

import argparse
import json
import math
import sys
import time
from typing import Any, Dict, List, Optional

from kiwirec.client import RecorderClient, ServiceError
from kiwirec.job.validator import calc_freq_range, check_schedule, format_freq
from kiwirec.util.duration import parse_duration_to_seconds
from kiwirec.util.exit_codes import ExitCode
from kiwirec.util.logging import configure_logging


def _fmt_ts(ts: Optional[int]) -> str:
    if ts is None:
        return "-"
    try:
        return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))
    except (OverflowError, ValueError, OSError):
        return str(ts)


def _client(args: argparse.Namespace) -> RecorderClient:
    from kiwirec_web.config import SERVICE_URL

    return RecorderClient(args.url or SERVICE_URL)


def _settings_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    frequency = args.freq_khz * 1000
    settings: Dict[str, Any] = {
        "rec_type": args.type,
        "frequency": round(frequency) if math.isfinite(frequency) else frequency,
        "duration": parse_duration_to_seconds(getattr(args, "duration", None)),
        "interval": parse_duration_to_seconds(getattr(args, "interval", None)),
    }
    if args.zoom is not None:
        settings["zoom"] = args.zoom
    return settings


def _exit_code_for(exc: ServiceError) -> int:
    if exc.status is None:
        return ExitCode.SERVICE_UNAVAILABLE
    if exc.status == 404:
        return ExitCode.JOB_NOT_FOUND
    if exc.status == 400:
        return ExitCode.INVALID_ARGS
    return ExitCode.GENERAL_ERROR


def _service_error(exc: ServiceError) -> int:
    code = _exit_code_for(exc)
    print(f"error: {ExitCode.message(code)}: {exc}", file=sys.stderr)
    payload = exc.payload if isinstance(exc.payload, dict) else {}
    for message in payload.get("errors", []):
        print(f"  - {message}", file=sys.stderr)
    return code


# ---------- commands ----------

def cmd_serve(args: argparse.Namespace) -> int:
    from kiwirec_web import create_app
    from kiwirec_web.config import HOST, PORT

    configure_logging(level=args.log_level)
    app = create_app()
    app.run(host=args.host or HOST, port=args.port or PORT, threaded=True, use_reloader=False)
    return ExitCode.SUCCESS


def cmd_check(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    result = calc_freq_range(settings["frequency"], settings.get("zoom"), settings["rec_type"])
    errors = list(result.errors)
    if args.duration is not None:
        errors += check_schedule(settings["duration"], settings["interval"])
    if result.plan is not None:
        plan = result.plan
        print(f"Bandwidth: {format_freq(plan.bandwidth_hz)}")
        print(f"Range: {format_freq(plan.range_min_hz)} - {format_freq(plan.range_max_hz)}")
    for message in errors:
        print(message, file=sys.stderr)
    return ExitCode.INVALID_ARGS if errors else ExitCode.SUCCESS


def cmd_list(args: argparse.Namespace) -> int:
    try:
        jobs = _client(args).list_jobs()
    except ServiceError as exc:
        return _service_error(exc)
    if not jobs:
        print("No jobs.")
        return ExitCode.SUCCESS
    for j in sorted(jobs, key=lambda j: j.get("started_at") or 0, reverse=True):
        state = "recording" if j["running"] else "idle"
        s = j["settings"]
        print(
            f"{j['job_id']}\t{j['job_uid']}\t{state}\t{s['rec_type']}\t{format_freq(s['frequency'])}"
            f"\tstarted {_fmt_ts(j['started_at'])}\tnext {_fmt_ts(j['next_run_start'])}"
        )
    return ExitCode.SUCCESS


def cmd_status(args: argparse.Namespace) -> int:
    try:
        job = _client(args).job_detail(args.job_id)
    except ServiceError as exc:
        return _service_error(exc)
    job = dict(job)
    job["logs"] = len(job.get("logs", []))
    print(json.dumps(job, indent=2))
    return ExitCode.SUCCESS


def cmd_logs(args: argparse.Namespace) -> int:
    try:
        job = _client(args).job_detail(args.job_id)
    except ServiceError as exc:
        return _service_error(exc)
    logs = job.get("logs", [])
    if args.tail is not None and args.tail > 0:
        logs = logs[-args.tail:]
    for entry in logs:
        print(f"{_fmt_ts(entry['timestamp'])}  {entry['data']}")
    return ExitCode.SUCCESS


def cmd_start(args: argparse.Namespace) -> int:
    try:
        job = _client(args).start_job(_settings_from_args(args))
    except ServiceError as exc:
        return _service_error(exc)
    print(f"{job['job_id']}\t{job['job_uid']}")
    return ExitCode.SUCCESS


def cmd_stop(args: argparse.Namespace) -> int:
    try:
        job = _client(args).stop_job(args.job_id)
    except ServiceError as exc:
        return _service_error(exc)
    print(f"{job['job_id']}\t{job['job_uid']}\tstopped")
    return ExitCode.SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    try:
        _client(args).remove_job(args.job_id)
    except ServiceError as exc:
        return _service_error(exc)
    print(f"{args.job_id}\tremoved")
    return ExitCode.SUCCESS


def _add_settings_args(s: argparse.ArgumentParser, *, require_duration: bool) -> None:
    s.add_argument("--type", choices=["png", "iq"], required=True, help="Spectrum snapshot (png) or raw IQ samples (iq)")
    s.add_argument("--freq-khz", dest="freq_khz", type=float, required=True, help="Center frequency in kHz")
    s.add_argument("--zoom", type=int, default=None, help="Spectrum zoom 0-14 (png only)")
    s.add_argument("--duration", required=require_duration, default=None, help="Run length (e.g., 30, 30s, 5m)")
    s.add_argument("--interval", default=None, help="Repeat every (e.g., 10m); omit for a one-shot job")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="kiwirec-control", description="Manage KiwiSDR recording jobs")
    p.add_argument("--url", default=None, help="Service base URL (default KIWIREC_URL)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # serve
    s = sub.add_parser("serve", help="Run the recorder JSON API")
    s.add_argument("--host", default=None)
    s.add_argument("--port", type=int, default=None)
    s.add_argument("--log-level", dest="log_level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    s.set_defaults(func=cmd_serve)

    # check
    s = sub.add_parser("check", help="Validate settings locally and print the capture range")
    _add_settings_args(s, require_duration=False)
    s.set_defaults(func=cmd_check)

    # list
    s = sub.add_parser("list", help="List all jobs")
    s.set_defaults(func=cmd_list)

    # status
    s = sub.add_parser("status", help="Show job details as JSON")
    s.add_argument("job_id", type=int)
    s.set_defaults(func=cmd_status)

    # logs
    s = sub.add_parser("logs", help="Print job logs")
    s.add_argument("job_id", type=int)
    s.add_argument("--tail", type=int, default=None)
    s.set_defaults(func=cmd_logs)

    # start
    s = sub.add_parser("start", help="Create a recording job")
    _add_settings_args(s, require_duration=True)
    s.set_defaults(func=cmd_start)

    # stop
    s = sub.add_parser("stop", help="Stop the current run of a job")
    s.add_argument("job_id", type=int)
    s.set_defaults(func=cmd_stop)

    # remove
    s = sub.add_parser("remove", help="Remove a job and kill its capture")
    s.add_argument("job_id", type=int)
    s.set_defaults(func=cmd_remove)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        print(f"error: {e}", file=sys.stderr)
        return ExitCode.INVALID_ARGS


if __name__ == "__main__":
    sys.exit(main())
