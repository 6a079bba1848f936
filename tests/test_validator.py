import math

import pytest

from kiwirec.job.errors import ValidationError
from kiwirec.job.model import RecordingType
from kiwirec.job.validator import (
    IQ_BANDWIDTH,
    MAX_FREQ,
    MAX_ZOOM,
    MIN_FREQ,
    calc_freq_range,
    check_schedule,
    format_freq,
    parse_settings,
    validate_request,
)


def test_spectrum_bandwidth_halves_per_zoom_level() -> None:
    for zoom in range(MAX_ZOOM + 1):
        result = calc_freq_range(15_000_000, zoom, "png")
        assert result.ok
        assert result.plan is not None
        assert result.plan.bandwidth_hz == (MAX_FREQ - MIN_FREQ) / 2 ** zoom


def test_iq_bandwidth_is_fixed_and_ignores_zoom() -> None:
    result = calc_freq_range(7_100_000, None, "iq")
    assert result.ok
    assert result.plan.bandwidth_hz == IQ_BANDWIDTH
    assert result.plan.range_min_hz == 7_094_000
    assert result.plan.range_max_hz == 7_106_000


def test_full_span_centered_on_receiver_is_accepted() -> None:
    result = calc_freq_range(15_000_000, 0, RecordingType.PNG)
    assert result.errors == []
    assert result.plan.range_min_hz == MIN_FREQ
    assert result.plan.range_max_hz == MAX_FREQ


def test_range_below_receiver_minimum() -> None:
    result = calc_freq_range(0, 1, "png")
    assert result.errors == ["Frequency range below MIN_FREQ 0 Hz. Selected min = -7.5 MHz"]
    assert result.plan is not None


def test_range_above_receiver_maximum() -> None:
    result = calc_freq_range(20_000_000, 0, "png")
    assert result.errors == ["Frequency range exceeds MAX_FREQ 30.0 MHz. Selected max = 35.0 MHz"]


def test_zoom_limits() -> None:
    high = calc_freq_range(7_000_000, 15, "png")
    assert high.errors == ["Zoom is too high: 15. Maximum is 14."]
    assert high.plan is None

    low = calc_freq_range(7_000_000, -1, "png")
    assert low.errors == ["Zoom is too low: -1. Minimum is 0."]

    assert calc_freq_range(7_000_000, "5", "png").errors == ["Zoom is not a number."]
    assert calc_freq_range(7_000_000, None, "png").errors == ["Zoom is not a number."]
    assert calc_freq_range(7_000_000, 2.5, "png").errors == ["Zoom must be a whole number: 2.5."]


def test_frequency_must_be_a_number() -> None:
    assert calc_freq_range(math.nan, 3, "png").errors == ["Frequency is not a number."]
    assert calc_freq_range("7000000", 3, "png").errors == ["Frequency is not a number."]
    assert calc_freq_range(True, 3, "png").errors == ["Frequency is not a number."]


def test_unknown_type_is_rejected() -> None:
    result = calc_freq_range(7_000_000, 3, "wav")
    assert result.errors == ["Invalid type: wav"]
    assert result.plan is None


def test_schedule_checks() -> None:
    assert check_schedule(30, None) == []
    assert check_schedule(30, 0) == []
    assert check_schedule(0, None) == ["Duration must be greater than 0."]
    assert check_schedule(30, -1) == ["Interval must not be negative."]
    assert check_schedule("x", "y") == ["Duration is not a number.", "Interval is not a number."]


def test_validate_request_reports_every_violation() -> None:
    errors = validate_request({"rec_type": "png", "frequency": 7_000_000, "zoom": 20, "duration": -5})
    assert errors == ["Zoom is too high: 20. Maximum is 14.", "Duration must be greater than 0."]


def test_parse_settings_normalizes_values() -> None:
    settings = parse_settings(
        {"rec_type": "iq", "frequency": 7_100_000.4, "zoom": 3, "duration": 60, "interval": 0}
    )
    assert settings.rec_type is RecordingType.IQ
    assert settings.frequency == 7_100_000
    assert settings.zoom is None
    assert settings.interval is None
    assert not settings.is_recurring


def test_parse_settings_raises_with_messages() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_settings({"rec_type": "png", "frequency": 0, "zoom": 1, "duration": 30})
    assert excinfo.value.errors == ["Frequency range below MIN_FREQ 0 Hz. Selected min = -7.5 MHz"]


def test_format_freq_thresholds() -> None:
    assert format_freq(999) == "999 Hz"
    assert format_freq(12_000) == "12.0 kHz"
    assert format_freq(7_100_000) == "7.1 MHz"


def test_exact_ties_round_away_from_zero() -> None:
    assert format_freq(1_250) == "1.3 kHz"
    assert format_freq(-1_250) == "-1.3 kHz"
    assert format_freq(2_250_000) == "2.3 MHz"
    assert format_freq(2.5) == "3 Hz"

    result = calc_freq_range(4_750, None, "iq")
    assert result.errors == ["Frequency range below MIN_FREQ 0 Hz. Selected min = -1.3 kHz"]


def test_integers_beyond_float_range_are_validated() -> None:
    huge = 10 ** 400

    high = calc_freq_range(huge, 5, "png")
    assert high.plan is None
    assert len(high.errors) == 1
    assert high.errors[0].startswith("Frequency range exceeds MAX_FREQ 30.0 MHz. Selected max = 1000")
    assert high.errors[0].endswith(" MHz")

    low = calc_freq_range(-huge, None, "iq")
    assert len(low.errors) == 1
    assert low.errors[0].startswith("Frequency range below MIN_FREQ 0 Hz. Selected min = -1000")

    assert calc_freq_range(7_000_000, huge, "png").errors == [f"Zoom is too high: {huge}. Maximum is 14."]
    assert check_schedule(huge, huge) == []
    assert check_schedule(-huge, -huge) == [
        "Duration must be greater than 0.",
        "Interval must not be negative.",
    ]
