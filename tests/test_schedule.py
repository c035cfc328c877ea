"""
Window validation and venue buffer rules
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from campus_tickets.core.exceptions import ValidationError
from campus_tickets.services import find_conflict, validate_event_window, windows_conflict

NOW = datetime(2030, 5, 1, 8, 0)
DAY = datetime(2030, 5, 2)
BUFFER = timedelta(minutes=60)


def at(hour, minute=0):
    return DAY.replace(hour=hour, minute=minute)


def test_valid_window_passes():
    validate_event_window(at(10), at(11), NOW)


def test_end_before_start_rejected():
    with pytest.raises(ValidationError, match="End time must be after"):
        validate_event_window(at(11), at(10), NOW)

    with pytest.raises(ValidationError, match="End time must be after"):
        validate_event_window(at(10), at(10), NOW)


def test_too_short_rejected():
    """start = now + 10 min, end = start + 10 min"""
    start = NOW + timedelta(minutes=10)
    with pytest.raises(ValidationError, match="at least 15 minutes"):
        validate_event_window(start, start + timedelta(minutes=10), NOW)


def test_duration_bounds_are_inclusive():
    validate_event_window(at(10), at(10, 15), NOW)
    validate_event_window(at(10), at(18), NOW)


def test_too_long_rejected():
    with pytest.raises(ValidationError, match="cannot exceed 8 hours"):
        validate_event_window(at(10), at(18, 1), NOW)


def test_past_start_rejected():
    with pytest.raises(ValidationError, match="must be in the future"):
        validate_event_window(NOW - timedelta(hours=1), NOW, NOW)

    with pytest.raises(ValidationError, match="must be in the future"):
        validate_event_window(NOW, NOW + timedelta(hours=1), NOW)


def test_past_start_allowed_when_not_required():
    validate_event_window(NOW - timedelta(hours=2), NOW - timedelta(hours=1), NOW, require_future=False)


def test_rules_checked_in_order():
    """A short window in the past reports the duration rule first"""
    start = NOW - timedelta(hours=1)
    with pytest.raises(ValidationError, match="at least 15 minutes"):
        validate_event_window(start, start + timedelta(minutes=5), NOW)


@pytest.mark.parametrize(
    "start,end,conflicts",
    [
        ((11, 30), (12, 30), True),   # 30 minutes after A ends
        ((12, 1), (13, 0), True),     # 61 minutes after, still inside the doubled buffer
        ((12, 0), (13, 0), True),
        ((12, 59), (13, 30), True),
        ((13, 0), (14, 0), False),    # buffered windows touch at 12:00
        ((10, 0), (11, 0), True),     # identical
        ((7, 1), (8, 1), True),
        ((7, 0), (8, 0), False),
    ],
)
def test_buffer_against_ten_to_eleven(start, end, conflicts):
    """Existing event A runs 10:00-11:00"""
    assert windows_conflict(at(*start), at(*end), at(10), at(11), BUFFER) is conflicts


def test_find_conflict_reports_first_match():
    existing = [
        SimpleNamespace(id=1, start_time=at(8), end_time=at(9)),
        SimpleNamespace(id=2, start_time=at(10), end_time=at(11)),
        SimpleNamespace(id=3, start_time=at(10, 30), end_time=at(11, 30)),
    ]
    hit = find_conflict(at(10, 15), at(10, 45), existing, BUFFER)
    assert hit.id == 1

    assert find_conflict(at(15), at(16), existing, BUFFER) is None


def test_find_conflict_uses_configured_buffer():
    existing = [SimpleNamespace(id=7, start_time=at(10), end_time=at(11))]
    assert find_conflict(at(12, 30), at(13), existing).id == 7
    assert find_conflict(at(13), at(14), existing) is None
