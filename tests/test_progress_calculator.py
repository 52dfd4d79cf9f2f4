from fractions import Fraction

import pytest

from taskboard.models import TaskStatus
from taskboard.progress import (
    STATUS_PROGRESS,
    ProgressCounts,
    ProgressSource,
    derive,
    is_manual,
    progress_info,
)
from taskboard.progress.calculator import round_half_up


@pytest.mark.parametrize(
    "status, expected",
    [
        (TaskStatus.PENDING, 10),
        (TaskStatus.IN_PROGRESS, 50),
        (TaskStatus.REVIEW, 80),
        (TaskStatus.COMPLETED, 100),
    ],
)
def test_status_fallback_without_items(status, expected):
    assert derive(0, 0, 0, 0, status) == (expected, ProgressSource.STATUS)


def test_every_status_has_a_baseline():
    assert set(STATUS_PROGRESS) == set(TaskStatus)


@pytest.mark.parametrize(
    "total, done, expected",
    [(1, 0, 0), (1, 1, 100), (3, 1, 33), (3, 2, 67), (6, 5, 83), (8, 1, 13), (8, 3, 38)],
)
def test_subtasks_only(total, done, expected):
    for status in TaskStatus:
        assert derive(total, done, 0, 0, status) == (expected, ProgressSource.SUBTASKS)


def test_checklist_only():
    assert derive(0, 0, 4, 1, TaskStatus.COMPLETED) == (25, ProgressSource.CHECKLIST)
    assert derive(0, 0, 3, 3, TaskStatus.PENDING) == (100, ProgressSource.CHECKLIST)


def test_hybrid_averages_percentages():
    assert derive(2, 1, 4, 4, TaskStatus.IN_PROGRESS) == (75, ProgressSource.HYBRID)


def test_hybrid_is_not_a_pooled_item_count():
    # Pooled would be 1/4 done = 25; the average of 100% and 0% is 50.
    assert derive(1, 1, 3, 0, TaskStatus.PENDING) == (50, ProgressSource.HYBRID)


def test_hybrid_rounds_after_averaging():
    # 50% and 25% average to 37.5, rounded half up.
    assert derive(2, 1, 4, 1, TaskStatus.PENDING) == (38, ProgressSource.HYBRID)
    # 33.33..% twice stays 33.
    assert derive(3, 1, 3, 1, TaskStatus.PENDING) == (33, ProgressSource.HYBRID)


def test_round_half_up():
    assert round_half_up(0) == 0
    assert round_half_up(2) == 2
    assert round_half_up(Fraction(25, 2)) == 13
    assert round_half_up(Fraction(5, 2)) == 3
    assert round_half_up(Fraction(249, 10)) == 25


@pytest.mark.parametrize(
    "stored, derived, expected",
    [(55, 50, False), (56, 50, True), (45, 50, False), (44, 50, True), (50, 50, False), (0, 100, True)],
)
def test_manual_detection_threshold(stored, derived, expected):
    assert is_manual(stored, derived) is expected


def test_progress_info_marks_manual_override():
    counts = ProgressCounts(0, 0, 4, 1, TaskStatus.IN_PROGRESS)

    info = progress_info("t-1", counts, stored=10)

    assert info.calculated_progress == 25
    assert info.stored_progress == 10
    assert info.is_manual is True
    assert info.source is ProgressSource.MANUAL
    assert info.description == "Progress set manually"


def test_progress_info_keeps_source_when_close():
    counts = ProgressCounts(0, 0, 4, 1, TaskStatus.IN_PROGRESS)

    info = progress_info("t-1", counts, stored=28)

    assert info.is_manual is False
    assert info.source is ProgressSource.CHECKLIST
    assert info.description == "1/4 checklist items done"


def test_progress_info_hybrid_description():
    counts = ProgressCounts(2, 1, 4, 4, TaskStatus.REVIEW)

    info = progress_info("t-1", counts, stored=75)

    assert info.description == "Average of subtasks (50%) and checklist (100%)"
