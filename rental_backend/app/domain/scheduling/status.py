"""
Availability & status engine.

A car's status is a pure function of its live reservations and the current
instant. The lifecycle manager calls it after every reservation write and
stores the result on the car.
"""

import logging
from datetime import datetime
from typing import Iterable

from rental_backend.app.domain.scheduling.temporal import TimezoneLike, to_epoch_ms
from rental_backend.app.models.enums import CarStatus
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)


def compute_status(
    car_id: str,
    reservations: Iterable[Reservation],
    now: datetime,
    tz: TimezoneLike = None
) -> CarStatus:
    """
    Derive a car's occupancy from its reservations.

    Only BOOKED reservations count. IN_USE wins over RESERVED if both
    apply, which can only happen when overlapping bookings slipped in.

    Args:
        car_id: Car to classify
        reservations: All reservations (any car)
        now: Current instant
        tz: Business timezone for naive values

    Returns:
        IN_USE if a reservation's interval contains now, RESERVED if one
        starts after now, FREE otherwise
    """
    now_ms = to_epoch_ms(now, tz)
    has_active = False
    has_upcoming = False

    for reservation in reservations:
        if reservation.car_id != car_id or not reservation.is_live:
            continue

        start = to_epoch_ms(reservation.start_at, tz)
        end = to_epoch_ms(reservation.end_at, tz)
        if start is None or end is None:
            logger.warning("Ignoring reservation %s with unparseable interval in status derivation", reservation.id)
            continue

        if start <= now_ms <= end:
            has_active = True
        if start > now_ms:
            has_upcoming = True

    if has_active:
        return CarStatus.IN_USE
    if has_upcoming:
        return CarStatus.RESERVED
    return CarStatus.FREE
