"""Validation of recorder requests against receiver and sampling limits.

Everything here is pure: functions take plain values, never touch job state,
and report problems as human readable messages rather than raising, so the
caller sees every violation of a request at once.

The receiver covers ``[MIN_FREQ, MAX_FREQ]``. A spectrum capture spans
``(MAX_FREQ - MIN_FREQ) / 2**zoom`` Hz around its center frequency, an IQ
capture a fixed ``IQ_BANDWIDTH``; the whole span must fit in the receiver
range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, List, Mapping, Optional, Union

from kiwirec.job.errors import ValidationError
from kiwirec.job.model import RecorderSettings, RecordingType

MIN_FREQ = 0
MAX_FREQ = 30_000_000
MIN_ZOOM = 0
MAX_ZOOM = 14
IQ_BANDWIDTH = 12_000

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class CapturePlan:
    bandwidth_hz: float
    range_min_hz: float
    range_max_hz: float


@dataclass
class FreqRangeResult:
    """Outcome of :func:`calc_freq_range`.

    ``plan`` is present whenever a bandwidth could be computed and the range
    fits in a float, even if it violates the receiver limits; ``errors`` is
    empty iff the request is acceptable.
    """

    plan: Optional[CapturePlan] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def is_number(value: Any) -> bool:
    """True for ints and finite floats; bools and NaN/inf do not count."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def format_number(value: Number) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _scaled(freq_hz: Number, divisor: int) -> Number:
    """``freq_hz / divisor`` in float arithmetic, exact once past float range."""
    if not isinstance(freq_hz, Decimal):
        try:
            return freq_hz / divisor
        except OverflowError:
            freq_hz = Decimal(freq_hz)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, freq_hz.adjusted() + 16)
        return freq_hz / divisor


def _to_fixed(value: Number, places: int) -> str:
    """Fixed-point text with exact ties rounded away from zero (JS ``toFixed``)."""
    exact = Decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, exact.adjusted() + places + 2)
        text = str(abs(exact).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP))
    return "-" + text if exact < 0 else text


def format_freq(freq_hz: Number) -> str:
    """Render a frequency the way the recorder web page does."""
    magnitude = abs(freq_hz)
    if magnitude < 1000:
        return f"{_to_fixed(freq_hz, 0)} Hz"
    if magnitude < 1_000_000:
        return f"{_to_fixed(_scaled(freq_hz, 1000), 1)} kHz"
    return f"{_to_fixed(_scaled(freq_hz, 1_000_000), 1)} MHz"


def coerce_mode(mode: Any) -> Optional[RecordingType]:
    try:
        return RecordingType(mode)
    except (ValueError, TypeError):
        return None


def check_zoom(zoom: Any) -> List[str]:
    if not is_number(zoom):
        return ["Zoom is not a number."]
    if zoom < MIN_ZOOM:
        return [f"Zoom is too low: {format_number(zoom)}. Minimum is {MIN_ZOOM}."]
    if zoom > MAX_ZOOM:
        return [f"Zoom is too high: {format_number(zoom)}. Maximum is {MAX_ZOOM}."]
    if not float(zoom).is_integer():
        return [f"Zoom must be a whole number: {format_number(zoom)}."]
    return []


def spectrum_bandwidth(zoom: int) -> float:
    return (MAX_FREQ - MIN_FREQ) / 2 ** zoom


def calc_freq_range(frequency_hz: Any, zoom: Any, mode: Any) -> FreqRangeResult:
    """Turn ``(frequency, zoom, mode)`` into a capture plan or violations."""
    result = FreqRangeResult()

    if not is_number(frequency_hz):
        result.errors.append("Frequency is not a number.")
        return result

    rec_type = coerce_mode(mode)
    if rec_type is RecordingType.PNG:
        zoom_errors = check_zoom(zoom)
        if zoom_errors:
            result.errors.extend(zoom_errors)
            return result
        bandwidth = spectrum_bandwidth(int(zoom))
    elif rec_type is RecordingType.IQ:
        bandwidth = IQ_BANDWIDTH
    else:
        result.errors.append(f"Invalid type: {mode}")
        return result

    try:
        range_max = frequency_hz + bandwidth / 2
        range_min = frequency_hz - bandwidth / 2
    except OverflowError:
        # int frequency beyond float range; compare exactly, no plan
        with localcontext() as ctx:
            ctx.prec = abs(frequency_hz).bit_length() // 3 + 16
            half = Decimal(bandwidth) / 2
            range_max = Decimal(frequency_hz) + half
            range_min = Decimal(frequency_hz) - half
    else:
        result.plan = CapturePlan(bandwidth_hz=bandwidth, range_min_hz=range_min, range_max_hz=range_max)

    if range_max > MAX_FREQ:
        result.errors.append(
            f"Frequency range exceeds MAX_FREQ {format_freq(MAX_FREQ)}. "
            f"Selected max = {format_freq(range_max)}"
        )
    if range_min < MIN_FREQ:
        result.errors.append(
            f"Frequency range below MIN_FREQ {format_freq(MIN_FREQ)}. "
            f"Selected min = {format_freq(range_min)}"
        )
    return result


def check_schedule(duration: Any, interval: Any) -> List[str]:
    errors: List[str] = []
    if not is_number(duration):
        errors.append("Duration is not a number.")
    elif duration <= 0:
        errors.append("Duration must be greater than 0.")

    if interval is not None:
        if not is_number(interval):
            errors.append("Interval is not a number.")
        elif interval < 0:
            errors.append("Interval must not be negative.")
    return errors


def validate_request(payload: Mapping[str, Any]) -> List[str]:
    """Collect every violation in a raw start request body."""
    errors = calc_freq_range(payload.get("frequency"), payload.get("zoom"), payload.get("rec_type")).errors
    return errors + check_schedule(payload.get("duration"), payload.get("interval"))


def validate_settings(settings: RecorderSettings) -> List[str]:
    errors = calc_freq_range(settings.frequency, settings.zoom, settings.rec_type).errors
    return errors + check_schedule(settings.duration, settings.interval)


def parse_settings(payload: Mapping[str, Any]) -> RecorderSettings:
    """Build :class:`RecorderSettings` from a request body.

    Raises:
        ValidationError: with all violation messages if the body is rejected.
    """
    errors = validate_request(payload)
    if errors:
        raise ValidationError(errors)

    rec_type = RecordingType(payload["rec_type"])
    zoom = int(payload["zoom"]) if rec_type is RecordingType.PNG else None
    interval = payload.get("interval")
    return RecorderSettings(
        rec_type=rec_type,
        frequency=int(round(payload["frequency"])),
        zoom=zoom,
        duration=int(payload["duration"]),
        interval=int(interval) if interval else None,
    )
