import json
import logging

from kiwirec.util.logging import JSONFormatter, get_logger


def test_loggers_live_under_the_service_namespace() -> None:
    assert get_logger("kiwirec.job.store").name == "kiwirec.job.store"
    assert get_logger("kiwirec_web.app").name == "kiwirec.kiwirec_web.app"
    assert get_logger("__main__").name == "kiwirec.main"


def test_json_formatter_carries_job_context() -> None:
    record = logging.LogRecord("kiwirec.job", logging.INFO, __file__, 1, "run finished", None, None)
    record.job_id = 4
    record.job_uid = "K3ZQ-8HT1"
    record.outcome = "killed"

    out = json.loads(JSONFormatter().format(record))
    assert out["message"] == "run finished"
    assert out["job_uid"] == "K3ZQ-8HT1"
    assert out["outcome"] == "killed"
    assert "exit_code" not in out
