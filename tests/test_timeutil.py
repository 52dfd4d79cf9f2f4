from datetime import datetime, timedelta, timezone

from taskboard.models import Task
from taskboard.timeutil import as_utc, utcnow


def test_utcnow_is_timezone_aware():
    assert utcnow().tzinfo is not None
    assert utcnow().utcoffset() == timedelta(0)


def test_as_utc_normalizes_values():
    naive = datetime(2024, 3, 1, 9, 0)
    shifted = datetime(2024, 3, 1, 11, 0, tzinfo=timezone(timedelta(hours=2)))

    assert as_utc(None) is None
    assert as_utc(naive) == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert as_utc(shifted) == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_model_timestamps_are_timezone_aware(make_task, db_session):
    task = make_task()

    fresh = Task(title="Brief", user_id=task.user_id)
    assert fresh.created_at.tzinfo is not None
    assert fresh.updated_at.tzinfo is not None

    db_session.expire_all()
    stored = db_session.query(Task).filter(Task.id == task.id).one()
    assert abs(as_utc(stored.created_at) - utcnow()) < timedelta(minutes=5)
