from datetime import datetime, timezone

import pytest

from app.core.dates import add_time, process_weekly_stats
from app.domain.lifecycle import (
    Lifecycle,
    LifecycleTransitionError,
    is_active,
    lifecycle_fields,
    lifecycle_of,
    transition,
)


@pytest.mark.parametrize(
    "status, excluded, expected",
    [
        ("pending", False, Lifecycle.PENDING),
        ("available", False, Lifecycle.ACTIVE),
        ("unavailable", False, Lifecycle.SUSPENDED),
        ("unavailable", True, Lifecycle.EXCLUDED),
        ("available", True, Lifecycle.EXCLUDED),
    ],
)
def test_lifecycle_of_wire_fields(status, excluded, expected):
    assert lifecycle_of(status, excluded) == expected


def test_lifecycle_fields_round_trip():
    for state in Lifecycle:
        fields = lifecycle_fields(state)
        assert lifecycle_of(fields["status"], fields["excluded"]) == state


def test_excluded_is_terminal():
    for target in Lifecycle:
        with pytest.raises(LifecycleTransitionError):
            transition(Lifecycle.EXCLUDED, target)


def test_cannot_go_back_to_pending():
    with pytest.raises(LifecycleTransitionError):
        transition(Lifecycle.ACTIVE, Lifecycle.PENDING)
    assert transition(Lifecycle.PENDING, Lifecycle.ACTIVE) == {"status": "available", "excluded": False}
    assert transition(Lifecycle.SUSPENDED, Lifecycle.EXCLUDED) == {"status": "unavailable", "excluded": True}


def test_is_active():
    assert is_active("available", False)
    assert not is_active("available", True)
    assert not is_active("pending", False)


def test_add_time_units():
    start = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)

    assert add_time(start, 10, "minutes") == datetime(2024, 1, 31, 12, 10, tzinfo=timezone.utc)
    assert add_time(start, 2, "day") == datetime(2024, 2, 2, 12, 0, tzinfo=timezone.utc)
    assert add_time(start, 1, "month") == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert add_time(start, 1, "year") == datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)
    with pytest.raises(ValueError):
        add_time(start, 0, "day")
    with pytest.raises(ValueError):
        add_time(start, 1, "fortnight")


def test_weekly_stats_buckets_from_sunday():
    # Wednesday
    now = datetime(2024, 5, 15, 15, 0, tzinfo=timezone.utc)
    items = [
        {"created_at": datetime(2024, 5, 12, 0, 30, tzinfo=timezone.utc), "user_id": "a"},
        {"created_at": datetime(2024, 5, 14, 9, 0, tzinfo=timezone.utc), "user_id": "a"},
        {"created_at": datetime(2024, 5, 11, 23, 0, tzinfo=timezone.utc), "user_id": "b"},
        {"created_at": datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc), "user_id": "c"},
        {"created_at": None, "user_id": "d"},
    ]

    rows = process_weekly_stats(items, now=now)
    unique = process_weekly_stats(items, unique_field="user_id", now=now)

    assert [row["week"] for row in rows] == ["21/04", "28/04", "05/05", "12/05"]
    assert [row["count"] for row in rows] == [0, 0, 1, 2]
    assert [row["count"] for row in unique] == [0, 0, 1, 1]
