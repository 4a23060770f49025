"""
Interval overlap tests.
"""

import pytest

from rental_backend.app.domain.scheduling.overlap import find_overlap, has_overlap, overlaps
from rental_backend.app.models.enums import ReservationStatus
from rental_backend.app.models.reservation import Reservation

TZ = "Asia/Baku"


def reservation(rid, start, end, car_id="car-1", status=ReservationStatus.BOOKED):
    return Reservation(id=rid, car_id=car_id, customer_id="cust-1", start_at=start, end_at=end, status=status)


@pytest.mark.parametrize("a, b, expected", [
    ((1, 5), (6, 9), False),
    ((1, 5), (5, 9), True),   # touching boundary
    ((5, 9), (1, 5), True),
    ((1, 9), (3, 4), True),   # containment
    ((3, 4), (1, 9), True),
    ((1, 1), (1, 1), True),
    ((10, 20), (1, 9), False),
])
def test_overlaps_is_closed_interval(a, b, expected):
    assert overlaps(a[0], a[1], b[0], b[1]) is expected


def test_missing_bound_never_overlaps():
    assert overlaps(None, 5, 1, 9) is False
    assert overlaps(1, 5, 1, None) is False


def test_find_overlap_returns_conflicting_reservation():
    existing = [reservation("r1", "2024-06-01T10:00", "2024-06-05T10:00")]
    conflict = find_overlap(existing, "car-1", "2024-06-04", "2024-06-06", tz=TZ)
    assert conflict is not None
    assert conflict.id == "r1"


def test_touching_reservations_conflict():
    existing = [reservation("r1", "2024-06-01T10:00", "2024-06-05T10:00")]
    assert has_overlap(existing, "car-1", "2024-06-05T10:00", "2024-06-07T10:00", tz=TZ)


def test_other_cars_do_not_block():
    existing = [reservation("r1", "2024-06-01", "2024-06-05", car_id="car-2")]
    assert not has_overlap(existing, "car-1", "2024-06-02", "2024-06-03", tz=TZ)


def test_excluded_reservation_is_skipped():
    existing = [reservation("r1", "2024-06-01", "2024-06-05")]
    assert not has_overlap(existing, "car-1", "2024-06-02", "2024-06-06", "r1", tz=TZ)


def test_terminal_reservations_do_not_block_by_default():
    existing = [
        reservation("r1", "2024-06-01", "2024-06-05", status=ReservationStatus.CANCELED),
        reservation("r2", "2024-06-01", "2024-06-05", status=ReservationStatus.COMPLETED),
    ]
    assert not has_overlap(existing, "car-1", "2024-06-02", "2024-06-03", tz=TZ)
    assert has_overlap(existing, "car-1", "2024-06-02", "2024-06-03", tz=TZ, include_terminal=True)


def test_unparseable_records_are_skipped():
    existing = [
        reservation("bad", "garbage", "2024-06-05"),
        reservation("r2", "2024-07-01", "2024-07-05"),
    ]
    assert find_overlap(existing, "car-1", "2024-06-01", "2024-06-10", tz=TZ) is None


def test_unparseable_candidate_never_blocks():
    existing = [reservation("r1", "2024-06-01", "2024-06-05")]
    assert find_overlap(existing, "car-1", "not-a-date", "2024-06-05", tz=TZ) is None


def test_turnover_guard_allows_back_to_back():
    existing = [reservation("r1", "2024-06-01T10:00", "2024-06-05T10:00")]
    assert has_overlap(existing, "car-1", "2024-06-05T10:00", "2024-06-07T10:00", tz=TZ)
    assert not has_overlap(existing, "car-1", "2024-06-05T10:00", "2024-06-07T10:00", tz=TZ, guard_ms=1)
    # A real overlap is still caught with the guard on
    assert has_overlap(existing, "car-1", "2024-06-05T09:00", "2024-06-07T10:00", tz=TZ, guard_ms=60_000)
