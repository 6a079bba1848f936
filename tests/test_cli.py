from kiwirec.cli import main
from kiwirec.util.exit_codes import ExitCode


def test_check_prints_capture_range(capsys) -> None:
    code = main(["check", "--type", "png", "--freq-khz", "7100", "--zoom", "5", "--duration", "30s"])

    assert code == ExitCode.SUCCESS
    out = capsys.readouterr().out
    assert "Bandwidth: 937.5 kHz" in out
    assert "Range: 6.6 MHz - 7.6 MHz" in out


def test_check_reports_violations(capsys) -> None:
    code = main(["check", "--type", "png", "--freq-khz", "7100", "--zoom", "15"])

    assert code == ExitCode.INVALID_ARGS
    assert "Zoom is too high: 15. Maximum is 14." in capsys.readouterr().err


def test_bad_duration_is_invalid_args(capsys) -> None:
    code = main(["check", "--type", "iq", "--freq-khz", "7100", "--duration", "soon"])

    assert code == ExitCode.INVALID_ARGS
    assert "Invalid duration" in capsys.readouterr().err


def test_unreachable_service(capsys) -> None:
    assert main(["--url", "http://127.0.0.1:9", "list"]) == ExitCode.SERVICE_UNAVAILABLE
    assert "Recorder service unavailable" in capsys.readouterr().err
