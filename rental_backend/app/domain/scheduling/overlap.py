"""
Interval overlap checker.

Reservations are closed intervals [start, end]: two reservations that touch
at a boundary instant (one ends exactly when the next begins) overlap. A
turnover guard can be given to shorten every end instant before comparing,
which lets back-to-back bookings through.
"""

import logging
from typing import Iterable, Optional

from rental_backend.app.domain.scheduling.temporal import TimezoneLike, to_epoch_ms
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)


def overlaps(
    a_start: Optional[int],
    a_end: Optional[int],
    b_start: Optional[int],
    b_end: Optional[int]
) -> bool:
    """Closed-interval intersection test. A missing bound never overlaps."""
    if a_start is None or a_end is None or b_start is None or b_end is None:
        return False
    return a_start <= b_end and b_start <= a_end


def find_overlap(
    reservations: Iterable[Reservation],
    car_id: str,
    start_at,
    end_at,
    exclude_id: Optional[str] = None,
    *,
    tz: TimezoneLike = None,
    include_terminal: bool = False,
    guard_ms: int = 0
) -> Optional[Reservation]:
    """
    First reservation for ``car_id`` that overlaps the candidate interval.

    Args:
        reservations: All reservations (any car)
        car_id: Car the candidate interval is for
        start_at: Candidate start
        end_at: Candidate end
        exclude_id: Reservation being amended, skipped in the scan
        tz: Business timezone for naive values
        include_terminal: Let COMPLETED/CANCELED reservations block as well
        guard_ms: Turnover guard subtracted from every end instant

    Returns:
        The conflicting reservation, or None. A candidate with an unparseable
        start or end cannot block anything and returns None.
    """
    start = to_epoch_ms(start_at, tz)
    end = to_epoch_ms(end_at, tz)
    if start is None or end is None:
        return None
    end -= guard_ms

    for reservation in reservations:
        if reservation.car_id != car_id:
            continue
        if exclude_id and reservation.id == exclude_id:
            continue
        if not include_terminal and not reservation.is_live:
            continue

        other_start = to_epoch_ms(reservation.start_at, tz)
        other_end = to_epoch_ms(reservation.end_at, tz)
        if other_start is None or other_end is None:
            logger.warning("Skipping reservation %s with unparseable interval in overlap scan", reservation.id)
            continue

        if overlaps(start, end, other_start, other_end - guard_ms):
            return reservation

    return None


def has_overlap(
    reservations: Iterable[Reservation],
    car_id: str,
    start_at,
    end_at,
    exclude_id: Optional[str] = None,
    **options
) -> bool:
    """True when the candidate interval conflicts with an existing reservation."""
    return find_overlap(reservations, car_id, start_at, end_at, exclude_id, **options) is not None
