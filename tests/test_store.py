import re

import pytest

from kiwirec.job.errors import NoAvailableSlots, NotFound, ValidationError
from kiwirec.job.model import LogBuffer, RecorderSettings, RecordingType
from kiwirec.job.store import JobStore

UID_RE = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}$")


def _settings(**overrides) -> RecorderSettings:
    values = dict(rec_type=RecordingType.PNG, frequency=7_100_000, duration=30, zoom=5)
    values.update(overrides)
    return RecorderSettings(**values)


def test_create_assigns_increasing_ids_and_unique_uids() -> None:
    store = JobStore()
    jobs = [store.create(_settings()) for _ in range(5)]

    assert [job.job_id for job in jobs] == [1, 2, 3, 4, 5]
    assert len({job.job_uid for job in jobs}) == 5
    assert all(UID_RE.match(job.job_uid) for job in jobs)
    assert all(not job.running and job.started_at is None for job in jobs)


def test_colliding_uid_is_drawn_again() -> None:
    uids = iter(["AAAA-AAAA", "AAAA-AAAA", "BBBB-BBBB"])
    store = JobStore(uid_factory=lambda: next(uids))

    assert store.create(_settings()).job_uid == "AAAA-AAAA"
    assert store.create(_settings()).job_uid == "BBBB-BBBB"


def test_create_rejects_invalid_settings() -> None:
    store = JobStore()
    with pytest.raises(ValidationError):
        store.create(_settings(frequency=0, zoom=1))
    assert len(store) == 0


def test_slot_limit() -> None:
    store = JobStore()
    store.create(_settings(), limit=2)
    second = store.create(_settings(), limit=2)
    with pytest.raises(NoAvailableSlots):
        store.create(_settings(), limit=2)

    store.delete(second.job_id)
    assert store.create(_settings(), limit=2).job_id == 3


def test_unknown_job_raises_not_found() -> None:
    store = JobStore()
    with pytest.raises(NotFound):
        store.get(42)
    with pytest.raises(NotFound):
        store.update(42, lambda job: None)
    with pytest.raises(NotFound):
        store.delete(42)


def test_snapshots_do_not_follow_later_updates() -> None:
    store = JobStore(clock=lambda: 1000.0)
    job = store.create(_settings())
    before = store.get(job.job_id)

    store.append_log(job.job_id, "line")
    store.update(job.job_id, lambda j: setattr(j, "running", True))

    assert len(before.logs) == 0
    assert before.running is False
    after = store.get(job.job_id)
    assert after.running is True
    assert [(e.timestamp, e.data) for e in after.logs.entries()] == [(1000, "line")]


def test_log_buffer_evicts_oldest_entries() -> None:
    store = JobStore(log_cap=3)
    job = store.create(_settings())
    for i in range(5):
        store.append_log(job.job_id, str(i))

    assert [e.data for e in store.get(job.job_id).logs.entries()] == ["2", "3", "4"]


def test_log_tail_is_newest_first() -> None:
    logs = LogBuffer(cap=10)
    for i in range(5):
        logs.append(i, f"line {i}")

    assert [e.data for e in logs.tail(2)] == ["line 4", "line 3"]
    assert len(logs.tail(50)) == 5


def test_remove_flags_job_before_callback_then_deletes() -> None:
    store = JobStore()
    job = store.create(_settings(interval=600))
    seen = []

    def before_delete(job_id: int) -> None:
        seen.append(store.get(job_id).removed)

    removed = store.remove(job.job_id, before_delete=before_delete)

    assert seen == [True]
    assert removed.removed is True
    assert removed.next_run_start is None
    assert job.job_id not in store
    assert store.list() == []
