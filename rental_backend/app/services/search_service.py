"""
Search Service.

Front-desk lookup by plate: which car is it, who has it now, who has it next.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from rental_backend.app.core.exceptions import ResourceNotFoundError, ValidationError
from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.domain.scheduling.temporal import TimezoneLike, to_epoch_ms
from rental_backend.app.models.car import Car, normalize_plate
from rental_backend.app.models.customer import Customer
from rental_backend.app.models.document import parse_records
from rental_backend.app.models.enums import Collection, ReservationStatus
from rental_backend.app.models.reservation import Reservation


def _shape(reservation: Optional[Reservation], customers: Dict[str, Customer]) -> Optional[Dict[str, Any]]:
    if reservation is None:
        return None
    customer = customers.get(reservation.customer_id)
    return {
        "id": reservation.id,
        "start_at": reservation.start_at,
        "end_at": reservation.end_at,
        "status": reservation.status,
        "days": reservation.days,
        "price_per_day": reservation.price_per_day,
        "discount_percent": reservation.discount_percent,
        "total_price": reservation.total_price,
        "destination": reservation.destination,
        "customer_id": reservation.customer_id,
        "customer_name": customer.full_name if customer else None,
    }


class SearchService:

    @staticmethod
    async def search_by_plate(
        repository: CollectionRepository,
        plate: str,
        now: datetime,
        tz: TimezoneLike = None
    ) -> Dict[str, Any]:
        """
        Find a car by plate, ignoring case, spaces and dashes.

        Returns the car with its current reservation (interval contains now)
        and the next one (earliest start after now). Cancelled reservations
        are not considered.

        Raises:
            ValidationError: Empty plate (plate_required)
            ResourceNotFoundError: No car with that plate
        """
        wanted = normalize_plate(plate)
        if not wanted:
            raise ValidationError("Plate is required", reason="plate_required")

        cars = parse_records(await repository.load_all(Collection.CARS), Car)
        car = next((c for c in cars if normalize_plate(c.plate) == wanted), None)
        if car is None:
            raise ResourceNotFoundError("Car", plate)

        reservations = parse_records(await repository.load_all(Collection.RESERVATIONS), Reservation)
        customers = {
            customer.id: customer
            for customer in parse_records(await repository.load_all(Collection.CUSTOMERS), Customer)
        }

        now_ms = to_epoch_ms(now, tz)
        current = None
        upcoming = []
        for reservation in reservations:
            if reservation.car_id != car.id or reservation.status == ReservationStatus.CANCELED:
                continue
            start = to_epoch_ms(reservation.start_at, tz)
            end = to_epoch_ms(reservation.end_at, tz)
            if start is None:
                continue
            if current is None and end is not None and start <= now_ms <= end:
                current = reservation
            elif start > now_ms:
                upcoming.append((start, reservation))

        upcoming.sort(key=lambda item: item[0])
        next_reservation = upcoming[0][1] if upcoming else None

        return {
            "found": True,
            "car": {
                "id": car.id,
                "plate": car.plate,
                "brand": car.brand,
                "model": car.model,
                "status": car.status,
            },
            "current_reservation": _shape(current, customers),
            "next_reservation": _shape(next_reservation, customers),
        }
