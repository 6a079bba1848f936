"""Duration parsing helpers for CLI arguments."""

from __future__ import annotations

import argparse
from typing import Any, Optional


def parse_duration_to_seconds(spec: Optional[Any]) -> Optional[int]:
    """Parse strings like '30', '10m', '2h', returning whole seconds."""

    if spec is None:
        return None
    if isinstance(spec, (int, float)):
        return int(spec)
    text = str(spec).strip().lower()
    if not text:
        return None
    unit = text[-1]
    if unit.isalpha():
        value_part = text[:-1]
    else:
        unit = "s"
        value_part = text
    try:
        value = float(value_part)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid duration '{spec}'") from exc
    multipliers = {
        "s": 1,
        "m": 60,
        "h": 3600,
        "d": 86400,
    }
    if unit not in multipliers:
        raise argparse.ArgumentTypeError(f"Unsupported duration suffix '{unit}'")
    return int(round(value * multipliers[unit]))
