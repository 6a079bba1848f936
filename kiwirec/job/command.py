"""Translate recorder settings into the kiwirecorder.py command line."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from kiwirec.job.model import RecorderSettings, RecordingType
from kiwirec.util.time import utc_stamp

IQ_BANDWIDTH_TAG = "Bw1d2e4"


@dataclass(frozen=True)
class CaptureToolConfig:
    """Where the capture tool lives and which receiver it talks to."""

    python_exe: str = "python3"
    script: str = "kiwirecorder.py"
    workdir: str = "/usr/local/src/kiwiclient"
    sdr_host: str = "127.0.0.1"
    sdr_port: int = 8073
    output_dir: str = "/var/recorder/recorded-files/"
    filename: str = "KiwiRec"


def to_scientific(num: int) -> str:
    """Compact file-name friendly scientific notation: 7123000 -> 7d123e6."""
    if num == 0:
        return "0e0"
    exponent = math.floor(math.log10(num))
    mantissa = num / 10 ** exponent
    mantissa_str = f"{mantissa:.3f}".rstrip("0").rstrip(".").replace(".", "d")
    return f"{mantissa_str}e{exponent}"


def station_name(settings: RecorderSettings, job_uid: str, started_at: float) -> str:
    common = f"{job_uid}_{utc_stamp(started_at)}_Fq{to_scientific(settings.frequency)}"
    if settings.rec_type is RecordingType.PNG:
        return f"{common}_Zm{settings.zoom}"
    return f"{common}_{IQ_BANDWIDTH_TAG}"


def build_command(
    settings: RecorderSettings,
    *,
    job_uid: str,
    started_at: float,
    config: CaptureToolConfig,
) -> List[str]:
    cmd = [
        config.python_exe,
        config.script,
        "-s", config.sdr_host,
        "-p", str(config.sdr_port),
        f"--freq={settings.frequency / 1000:.3f}",
        "-d", config.output_dir,
        f"--filename={config.filename}",
        f"--station={station_name(settings, job_uid, started_at)}",
    ]
    if settings.rec_type is RecordingType.PNG:
        cmd += [
            "--wf",
            "--wf-png",
            "--speed=4",
            "--modulation=am",
            f"--zoom={settings.zoom}",
        ]
    else:
        cmd += ["--kiwi-wav", "--modulation=iq"]
    cmd.append(f"--time-limit={settings.duration}")
    return cmd
