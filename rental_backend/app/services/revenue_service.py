"""
Revenue Service.

Monthly revenue: reservations overlapping the month, enriched with the car
and customer they refer to. READ-ONLY.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.domain.reporting.period import aggregate_overlapping
from rental_backend.app.domain.scheduling.temporal import TimezoneLike
from rental_backend.app.models.car import Car
from rental_backend.app.models.customer import Customer
from rental_backend.app.models.document import parse_records
from rental_backend.app.models.enums import Collection
from rental_backend.app.models.reservation import Reservation


class RevenueService:

    @staticmethod
    async def monthly_revenue(
        repository: CollectionRepository,
        month: Optional[str],
        tz: TimezoneLike,
        now: datetime
    ) -> Dict[str, Any]:
        """
        Revenue report for one month.

        A reservation spanning two months appears, with its full total, in
        both. Cancelled reservations are left out.
        """
        reservations = parse_records(await repository.load_all(Collection.RESERVATIONS), Reservation)
        cars = {car.id: car for car in parse_records(await repository.load_all(Collection.CARS), Car)}
        customers = {
            customer.id: customer
            for customer in parse_records(await repository.load_all(Collection.CUSTOMERS), Customer)
        }

        summary = aggregate_overlapping(reservations, month, tz, now)

        items = []
        for reservation in summary.items:
            car = cars.get(reservation.car_id)
            customer = customers.get(reservation.customer_id)
            items.append({
                **reservation.to_record(),
                "car": {
                    "plate": car.plate if car else None,
                    "brand": car.brand if car else None,
                    "model": car.model if car else None,
                },
                "customer": {
                    "name": customer.full_name if customer else "",
                    "phone": customer.phone if customer else "",
                },
            })

        return {
            "month_start": summary.start,
            "month_end": summary.end,
            "items": items,
            "total": summary.total,
            "count": summary.count,
        }
