"""
Period Aggregator.

Answers "which records fall in month M, and what do they sum to" for the
expense ledgers (point-in-time membership) and for the revenue report
(interval overlap with the month).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Iterable, List, Optional, TypeVar

from rental_backend.app.domain.scheduling.overlap import overlaps
from rental_backend.app.domain.scheduling.temporal import TimezoneLike, month_window, to_epoch_ms
from rental_backend.app.models.enums import ReservationStatus
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PeriodSummary(Generic[T]):
    """Records of one month with their sum and count."""
    start: datetime
    end: datetime
    items: List[T] = field(default_factory=list)
    total: float = 0

    @property
    def count(self) -> int:
        return len(self.items)


def _record_instant(record: Any) -> Any:
    return getattr(record, "when", None) or getattr(record, "created_at", None)


def aggregate(
    records: Iterable[T],
    month_token: Optional[str],
    tz: TimezoneLike = None,
    now: Optional[datetime] = None,
    car_id: Optional[str] = None
) -> PeriodSummary[T]:
    """
    Records dated within a calendar month.

    A record's date is its ``when``, falling back to ``created_at``. Both
    month boundaries are inclusive at millisecond resolution. Records with a
    missing or unparseable date are left out of the items and the sum.

    Args:
        records: Ledger entries exposing ``when``/``created_at``/``amount``
        month_token: ``YYYY-MM``; malformed or missing means the current month
        tz: Business timezone
        now: Reference instant for the current month
        car_id: Keep only entries for this car

    Returns:
        PeriodSummary with the matching entries and the sum of their amounts
    """
    start, end = month_window(month_token, tz, now)
    start_ms, end_ms = to_epoch_ms(start), to_epoch_ms(end)

    summary: PeriodSummary[T] = PeriodSummary(start=start, end=end)
    for record in records:
        if car_id and getattr(record, "car_id", None) != car_id:
            continue

        instant = to_epoch_ms(_record_instant(record), tz)
        if instant is None:
            logger.warning("Skipping ledger entry %s without a usable date", getattr(record, "id", None))
            continue

        if start_ms <= instant <= end_ms:
            summary.items.append(record)

    summary.total = sum(float(getattr(record, "amount", 0) or 0) for record in summary.items)
    return summary


def aggregate_overlapping(
    reservations: Iterable[Reservation],
    month_token: Optional[str],
    tz: TimezoneLike = None,
    now: Optional[datetime] = None,
    include_canceled: bool = False
) -> PeriodSummary[Reservation]:
    """
    Reservations whose interval overlaps a calendar month.

    A reservation spanning a month boundary counts toward both months.
    Cancelled reservations earn nothing and are left out unless asked for.
    """
    start, end = month_window(month_token, tz, now)
    start_ms, end_ms = to_epoch_ms(start), to_epoch_ms(end)

    summary: PeriodSummary[Reservation] = PeriodSummary(start=start, end=end)
    for reservation in reservations:
        if reservation.status == ReservationStatus.CANCELED and not include_canceled:
            continue

        res_start = to_epoch_ms(reservation.start_at, tz)
        res_end = to_epoch_ms(reservation.end_at, tz)
        if res_start is None or res_end is None:
            logger.warning("Skipping reservation %s with unparseable interval in revenue", reservation.id)
            continue

        if overlaps(res_start, res_end, start_ms, end_ms):
            summary.items.append(reservation)

    summary.total = sum(reservation.total_price for reservation in summary.items)
    return summary
