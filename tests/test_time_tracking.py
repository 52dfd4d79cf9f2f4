from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from taskboard.errors import NotFoundError, TimerConflictError, ValidationError
from taskboard.models import EntryType, Task, TimeEntry, User
from taskboard.time_tracking import TimerService, elapsed_seconds, format_duration
from taskboard.timeutil import as_utc


@pytest.fixture
def timers(db_session, clock) -> TimerService:
    return TimerService(db_session, clock=clock)


def test_stop_records_whole_minutes(timers, make_task, clock, user, db_session):
    task = make_task()
    timers.start(user.id, task.id)
    clock.advance(125)

    entry = timers.stop(user.id, task.id, description="Wireframes")

    assert entry.duration_minutes == 2
    assert entry.description == "Wireframes"
    assert as_utc(entry.end_time) == clock.now
    db_session.expire_all()
    assert db_session.query(Task).filter(Task.id == task.id).one().actual_time_minutes == 2


def test_sessions_accumulate(timers, make_task, clock, user, db_session):
    task = make_task()
    for seconds in (600, 1800):
        timers.start(user.id, task.id)
        clock.advance(seconds)
        timers.pause(user.id, task.id)

    db_session.expire_all()
    assert db_session.query(Task).filter(Task.id == task.id).one().actual_time_minutes == 40
    assert timers.session_count(user.id, task.id) == 2
    assert len(timers.entries(task.id)) == 2


def test_pause_has_no_description(timers, make_task, user):
    task = make_task()
    timers.start(user.id, task.id)

    entry = timers.pause(user.id, task.id)

    assert entry.description is None
    assert entry.duration_minutes == 0


def test_single_active_timer_per_user(timers, make_task, user):
    first = make_task(title="Logo")
    second = make_task(title="Copy")
    timers.start(user.id, first.id)

    with pytest.raises(TimerConflictError, match="Logo"):
        timers.start(user.id, second.id)
    with pytest.raises(TimerConflictError):
        timers.start(user.id, first.id)

    assert timers.active_entry(user.id).task_id == first.id


def test_other_users_run_their_own_timers(timers, make_task, user, db_session):
    task = make_task()
    colleague = User(email="dev@agency.test", hashed_password="x")
    db_session.add(colleague)
    db_session.commit()

    timers.start(user.id, task.id)
    timers.start(colleague.id, task.id)

    assert timers.active_entry(colleague.id, task.id) is not None


def test_closing_without_running_timer(timers, make_task, user):
    task = make_task()

    with pytest.raises(NotFoundError):
        timers.pause(user.id, task.id)
    with pytest.raises(NotFoundError):
        timers.stop(user.id, task.id)


def test_elapsed_seconds_of_running_entry(timers, make_task, clock, user):
    task = make_task()
    entry = timers.start(user.id, task.id)
    clock.advance(42)

    assert elapsed_seconds(entry, clock()) == 42


def test_running_timers_are_unique_per_user(make_task, user, db_session, clock):
    first = make_task(title="Logo")
    second = make_task(title="Copy")
    db_session.add(TimeEntry(task_id=first.id, user_id=user.id, start_time=clock()))
    db_session.commit()

    db_session.add(TimeEntry(task_id=second.id, user_id=user.id, start_time=clock()))
    with pytest.raises(IntegrityError):
        db_session.commit()
    db_session.rollback()


def test_concurrent_start_reports_conflict(timers, make_task, user, monkeypatch):
    first = make_task(title="Logo")
    second = make_task(title="Copy")
    timers.start(user.id, first.id)
    # Simulate a request that checked before the first timer was committed
    monkeypatch.setattr(timers, "active_entry", lambda *args, **kwargs: None)

    with pytest.raises(TimerConflictError):
        timers.start(user.id, second.id)

    monkeypatch.undo()
    assert timers.active_entry(user.id).task_id == first.id


def test_manual_entry_rounds_to_nearest_minute(timers, make_task, clock, user, db_session):
    task = make_task()
    start = clock()

    entry = timers.add_manual(user.id, task.id, start, start + timedelta(minutes=14, seconds=30), "Review")

    assert entry.entry_type == EntryType.MANUAL
    assert entry.duration_minutes == 15
    assert entry.description == "Review"
    short = timers.add_manual(user.id, task.id, start, start + timedelta(seconds=29))
    assert short.duration_minutes == 0
    db_session.expire_all()
    assert db_session.query(Task).filter(Task.id == task.id).one().actual_time_minutes == 15
    assert timers.active_entry(user.id) is None


def test_manual_entry_needs_end_after_start(timers, make_task, clock, user):
    task = make_task()

    with pytest.raises(ValidationError):
        timers.add_manual(user.id, task.id, clock(), clock())
    with pytest.raises(ValidationError):
        timers.add_manual(user.id, task.id, clock(), clock() - timedelta(minutes=5))

    assert timers.entries(task.id) == []


def test_manual_entry_accepts_naive_times_as_utc(timers, make_task, clock, user):
    task = make_task()
    start = clock().replace(tzinfo=None)

    entry = timers.add_manual(user.id, task.id, start, clock() + timedelta(minutes=30))

    assert entry.duration_minutes == 30


def test_delete_entry_gives_minutes_back(timers, make_task, clock, user, db_session):
    task = make_task()
    timers.start(user.id, task.id)
    clock.advance(600)
    kept = timers.stop(user.id, task.id)
    removed = timers.add_manual(user.id, task.id, clock(), clock() + timedelta(minutes=20))

    timers.delete_entry(task.id, removed.id)

    db_session.expire_all()
    assert db_session.query(Task).filter(Task.id == task.id).one().actual_time_minutes == 10
    assert [entry.id for entry in timers.entries(task.id)] == [kept.id]
    with pytest.raises(NotFoundError):
        timers.delete_entry(task.id, removed.id)


@pytest.mark.parametrize(
    "minutes, expected",
    [(0, "0min"), (45, "45min"), (60, "1h"), (90, "1h 30min"), (125, "2h 5min")],
)
def test_format_duration(minutes, expected):
    assert format_duration(minutes) == expected
