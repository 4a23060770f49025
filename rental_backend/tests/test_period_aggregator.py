"""
Period aggregator tests: ledger month sums and revenue overlap.
"""

from datetime import datetime, timezone

from rental_backend.app.domain.reporting.period import aggregate, aggregate_overlapping
from rental_backend.app.models.enums import ReservationStatus
from rental_backend.app.models.expense import Expense
from rental_backend.app.models.reservation import Reservation

TZ = "Asia/Baku"
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def expense(eid, when=None, amount=10, car_id=None, created_at=None):
    return Expense(id=eid, when=when, amount=amount, car_id=car_id, created_at=created_at)


def reservation(rid, start, end, total, status=ReservationStatus.BOOKED):
    return Reservation(
        id=rid, car_id="car-1", customer_id="cust-1",
        start_at=start, end_at=end, total_price=total, status=status
    )


def test_month_sum_and_count():
    records = [
        expense("e1", "2024-05-01T00:00", 10),
        expense("e2", "2024-05-20T15:30", 25.5),
        expense("e3", "2024-06-01T00:00", 99),
        expense("e4", "2024-04-30T23:59:59", 7),
    ]
    summary = aggregate(records, "2024-05", TZ, NOW)
    assert [e.id for e in summary.items] == ["e1", "e2"]
    assert summary.total == 35.5
    assert summary.count == 2


def test_last_millisecond_of_month_is_included():
    records = [
        expense("e1", "2024-05-31T23:59:59.999", 1),
        expense("e2", "2024-06-01T00:00:00.000", 2),
    ]
    summary = aggregate(records, "2024-05", TZ, NOW)
    assert [e.id for e in summary.items] == ["e1"]


def test_boundaries_follow_business_timezone():
    # 20:30Z on April 30 is already May 1 in Baku
    records = [expense("e1", "2024-04-30T20:30:00Z", 5)]
    assert aggregate(records, "2024-05", TZ, NOW).count == 1
    assert aggregate(records, "2024-04", TZ, NOW).count == 0


def test_falls_back_to_created_at():
    records = [expense("e1", None, 12, created_at=datetime(2024, 5, 3, 9, 0, tzinfo=timezone.utc))]
    assert aggregate(records, "2024-05", TZ, NOW).total == 12


def test_undated_and_corrupt_entries_are_skipped():
    records = [expense("e1", None, 12), expense("e2", "someday", 5), expense("e3", "2024-05-02", 3)]
    summary = aggregate(records, "2024-05", TZ, NOW)
    assert [e.id for e in summary.items] == ["e3"]
    assert summary.total == 3


def test_car_filter():
    records = [
        expense("e1", "2024-05-02", 10, car_id="car-1"),
        expense("e2", "2024-05-02", 20, car_id="car-2"),
    ]
    summary = aggregate(records, "2024-05", TZ, NOW, car_id="car-2")
    assert [e.id for e in summary.items] == ["e2"]
    assert summary.total == 20


def test_malformed_token_means_current_month():
    records = [expense("e1", "2024-05-10", 10), expense("e2", "2024-01-10", 10)]
    summary = aggregate(records, "2024-13", TZ, NOW)
    assert [e.id for e in summary.items] == ["e1"]
    assert summary.start == datetime(2024, 5, 1, tzinfo=summary.start.tzinfo)


def test_empty_month():
    summary = aggregate([], "2024-05", TZ, NOW)
    assert summary.items == []
    assert summary.total == 0


def test_reservation_spanning_months_counts_in_both():
    records = [reservation("r1", "2024-04-28", "2024-05-03", 600)]
    assert aggregate_overlapping(records, "2024-04", TZ, NOW).total == 600
    assert aggregate_overlapping(records, "2024-05", TZ, NOW).total == 600
    assert aggregate_overlapping(records, "2024-06", TZ, NOW).total == 0


def test_revenue_skips_canceled_unless_asked():
    records = [
        reservation("r1", "2024-05-02", "2024-05-04", 300),
        reservation("r2", "2024-05-10", "2024-05-11", 200, status=ReservationStatus.CANCELED),
        reservation("r3", "2024-05-20", "2024-05-21", 150, status=ReservationStatus.COMPLETED),
    ]
    summary = aggregate_overlapping(records, "2024-05", TZ, NOW)
    assert [r.id for r in summary.items] == ["r1", "r3"]
    assert summary.total == 450
    assert aggregate_overlapping(records, "2024-05", TZ, NOW, include_canceled=True).total == 650


def test_revenue_skips_unparseable_intervals():
    records = [reservation("r1", "broken", "2024-05-04", 300)]
    assert aggregate_overlapping(records, "2024-05", TZ, NOW).count == 0


def test_last_representable_month_falls_back_to_current():
    records = [expense("e1", "2024-05-02T10:00", 10)]

    summary = aggregate(records, "9999-12", TZ, NOW)
    assert summary.start == datetime(2024, 5, 1, tzinfo=summary.start.tzinfo)
    assert summary.count == 1

    revenue = aggregate_overlapping([], "9999-12", TZ, NOW)
    assert revenue.total == 0
