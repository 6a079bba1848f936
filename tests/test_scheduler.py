from typing import List, Optional, Tuple

from kiwirec.job.model import Job, JobState, RecorderSettings, RecordingType
from kiwirec.job.scheduler import Scheduler, is_due, next_run_after
from kiwirec.job.store import JobStore
from kiwirec.job.supervisor import RunOutcome, RunResult


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeSupervisor:
    """Records launches instead of spawning processes."""

    def __init__(self) -> None:
        self.launches: List[Tuple[int, Optional[int]]] = []

    def launch(self, job: Job, on_exit) -> None:
        self.launches.append((job.job_id, job.started_at))
        return None


def _setup(now: float = 1000.0):
    clock = FakeClock(now)
    store = JobStore(clock=clock)
    supervisor = FakeSupervisor()
    scheduler = Scheduler(store, supervisor, clock=clock)
    return clock, store, supervisor, scheduler


def _settings(duration: int = 30, interval: Optional[int] = None) -> RecorderSettings:
    return RecorderSettings(RecordingType.PNG, 7_100_000, duration, zoom=5, interval=interval)


def _exit(scheduler: Scheduler, job_id: int) -> None:
    scheduler.on_run_exit(job_id, RunOutcome(RunResult.SUCCESS, 0))


def test_next_run_after() -> None:
    assert next_run_after(1000, _settings()) is None
    assert next_run_after(1000, _settings(duration=30, interval=600)) == 1600
    assert next_run_after(1000, _settings(duration=60, interval=10)) == 1060


def test_start_run_stamps_job_and_logs_settings() -> None:
    _, store, supervisor, scheduler = _setup()
    job = store.create(_settings(interval=600))

    assert scheduler.start_run(job.job_id) is True

    current = store.get(job.job_id)
    assert current.state is JobState.RUNNING
    assert current.running is True
    assert current.started_at == 1000
    assert current.next_run_start is None
    assert [e.data for e in current.logs.entries()] == [
        "<Started>",
        "<Settings>  Type: Png, Frequency: 7100000 Hz, Zoom: 5, Every 600 sec, for 30 sec",
    ]
    assert supervisor.launches == [(job.job_id, 1000)]


def test_running_job_is_not_started_twice() -> None:
    _, store, supervisor, scheduler = _setup()
    job = store.create(_settings(interval=600))

    assert scheduler.start_run(job.job_id) is True
    assert scheduler.start_run(job.job_id) is False
    assert len(supervisor.launches) == 1


def test_one_shot_job_terminates_after_its_run() -> None:
    clock, store, supervisor, scheduler = _setup()
    job = store.create(_settings())
    scheduler.start_run(job.job_id)
    _exit(scheduler, job.job_id)

    current = store.get(job.job_id)
    assert current.state is JobState.TERMINATED
    assert current.running is False
    assert current.next_run_start is None

    clock.now = 100_000
    assert scheduler.tick() == []
    assert scheduler.start_run(job.job_id) is False
    assert len(supervisor.launches) == 1


def test_recurring_job_waits_for_its_deadline() -> None:
    clock, store, supervisor, scheduler = _setup()
    job = store.create(_settings(duration=30, interval=600))
    scheduler.start_run(job.job_id)
    clock.now = 1030
    _exit(scheduler, job.job_id)

    current = store.get(job.job_id)
    assert current.state is JobState.WAITING
    assert current.next_run_start == 1600

    clock.now = 1599
    assert scheduler.tick() == []

    clock.now = 1600
    assert scheduler.tick() == [job.job_id]
    assert supervisor.launches[-1] == (job.job_id, 1600)


def test_short_interval_never_overlaps_runs() -> None:
    clock, store, _, scheduler = _setup()
    job = store.create(_settings(duration=60, interval=10))
    scheduler.start_run(job.job_id)
    _exit(scheduler, job.job_id)

    current = store.get(job.job_id)
    assert current.next_run_start >= current.started_at + 60


def test_late_tick_starts_overdue_run_immediately() -> None:
    clock, store, supervisor, scheduler = _setup()
    job = store.create(_settings(duration=30, interval=600))
    scheduler.start_run(job.job_id)
    _exit(scheduler, job.job_id)

    clock.now = 5000
    assert scheduler.tick() == [job.job_id]
    _exit(scheduler, job.job_id)
    assert store.get(job.job_id).next_run_start == 5600


def test_recurring_jobs_are_scheduled_independently() -> None:
    clock, store, _, scheduler = _setup()
    fast = store.create(_settings(duration=10, interval=100))
    slow = store.create(_settings(duration=10, interval=300))
    for job in (fast, slow):
        scheduler.start_run(job.job_id)
        _exit(scheduler, job.job_id)

    clock.now = 1100
    assert scheduler.tick() == [fast.job_id]

    clock.now = 1300
    assert scheduler.tick() == [slow.job_id]


def test_cancelled_job_is_never_started_again() -> None:
    clock, store, supervisor, scheduler = _setup()
    job = store.create(_settings(duration=30, interval=600))
    scheduler.start_run(job.job_id)
    _exit(scheduler, job.job_id)

    scheduler.cancel(job.job_id)
    clock.now = 2000

    assert scheduler.tick() == []
    assert scheduler.start_run(job.job_id) is False
    assert store.get(job.job_id).removed is True
    assert len(supervisor.launches) == 1


def test_exit_of_removed_job_terminates_it() -> None:
    _, store, _, scheduler = _setup()
    job = store.create(_settings(duration=30, interval=600))
    scheduler.start_run(job.job_id)
    store.mark_removed(job.job_id)
    _exit(scheduler, job.job_id)

    current = store.get(job.job_id)
    assert current.state is JobState.TERMINATED
    assert current.next_run_start is None


def test_is_due() -> None:
    job = Job(job_id=1, job_uid="AAAA-AAAA", settings=_settings(interval=600))
    assert not is_due(job, 10_000)

    job.state = JobState.WAITING
    job.next_run_start = 1600
    assert not is_due(job, 1599)
    assert is_due(job, 1600)
    assert is_due(job, 9999)

    job.removed = True
    assert not is_due(job, 9999)


def test_start_and_shutdown_background_thread() -> None:
    _, _, _, scheduler = _setup()
    scheduler.tick_seconds = 0.01
    scheduler.start()
    assert scheduler.is_alive()
    scheduler.shutdown()
    assert not scheduler.is_alive()
