"""
Car Service.

CRUD over the cars collection. ``status`` is never taken from clients;
only the reservation lifecycle writes it.
"""

import logging
from typing import Any, List, Mapping

from rental_backend.app.core.clock import Clock, new_id
from rental_backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.domain.billing.pricing import validate_unit_price
from rental_backend.app.models.car import Car, normalize_plate
from rental_backend.app.models.document import find_index, parse_records
from rental_backend.app.models.enums import CarStatus, Collection, ReservationStatus
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("brand", "model", "year", "plate", "vin", "base_price_per_day")
NULLABLE_FIELDS = ("year", "vin")


def _ensure_unique_plate(cars: List[Car], plate: str, exclude_id: str = None) -> None:
    wanted = normalize_plate(plate)
    if not wanted:
        return
    for car in cars:
        if car.id != exclude_id and normalize_plate(car.plate) == wanted:
            raise ConflictError(
                f"Plate {plate} is already registered",
                reason="duplicate_plate",
                details={"car_id": car.id}
            )


class CarService:

    @staticmethod
    async def list_cars(repository: CollectionRepository) -> List[Car]:
        return parse_records(await repository.load_all(Collection.CARS), Car)

    @staticmethod
    async def get_car(repository: CollectionRepository, car_id: str) -> Car:
        for car in await CarService.list_cars(repository):
            if car.id == car_id:
                return car
        raise ResourceNotFoundError("Car", car_id)

    @staticmethod
    async def create_car(repository: CollectionRepository, clock: Clock, data: Mapping[str, Any]) -> Car:
        """Register a car. New cars start FREE."""
        now = clock.now()
        car = Car(
            id=new_id(),
            brand=data.get("brand") or "",
            model=data.get("model") or "",
            year=data.get("year"),
            plate=(data.get("plate") or "").strip(),
            vin=data.get("vin"),
            base_price_per_day=validate_unit_price(data.get("base_price_per_day") or 0),
            status=CarStatus.FREE,
            created_at=now,
            updated_at=now
        )

        async with repository.lock(Collection.CARS):
            raw_cars = await repository.load_all(Collection.CARS)
            _ensure_unique_plate(parse_records(raw_cars, Car), car.plate)
            raw_cars.append(car.to_record())
            await repository.save_all(Collection.CARS, raw_cars)

        logger.info("Car %s registered (%s)", car.id, car.plate)
        return car

    @staticmethod
    async def update_car(
        repository: CollectionRepository,
        clock: Clock,
        car_id: str,
        patch: Mapping[str, Any]
    ) -> Car:
        changes = {
            name: value for name, value in patch.items()
            if name in EDITABLE_FIELDS and (value is not None or name in NULLABLE_FIELDS)
        }
        if "base_price_per_day" in changes:
            changes["base_price_per_day"] = validate_unit_price(changes["base_price_per_day"] or 0)
        if "plate" in changes:
            changes["plate"] = (changes["plate"] or "").strip()

        async with repository.lock(Collection.CARS):
            raw_cars = await repository.load_all(Collection.CARS)
            index = find_index(raw_cars, car_id)
            if index < 0:
                raise ResourceNotFoundError("Car", car_id)
            if "plate" in changes:
                _ensure_unique_plate(parse_records(raw_cars, Car), changes["plate"], exclude_id=car_id)

            record = {**raw_cars[index], **changes, "updated_at": clock.now()}
            car = Car.model_validate(record)
            raw_cars[index] = {**raw_cars[index], **car.to_record()}
            await repository.save_all(Collection.CARS, raw_cars)

        return car

    @staticmethod
    async def delete_car(repository: CollectionRepository, car_id: str) -> Car:
        """
        Remove a car.

        Refused while the car still has BOOKED reservations, so no live
        reservation ever points at a missing car.
        """
        async with repository.lock(Collection.RESERVATIONS):
            reservations = parse_records(await repository.load_all(Collection.RESERVATIONS), Reservation)
            booked = [r.id for r in reservations if r.car_id == car_id and r.status == ReservationStatus.BOOKED]

            async with repository.lock(Collection.CARS):
                raw_cars = await repository.load_all(Collection.CARS)
                index = find_index(raw_cars, car_id)
                if index < 0:
                    raise ResourceNotFoundError("Car", car_id)
                if booked:
                    raise ConflictError(
                        "Car has booked reservations",
                        reason="car_has_reservations",
                        details={"reservation_ids": booked}
                    )

                removed = Car.model_validate(raw_cars.pop(index))
                await repository.save_all(Collection.CARS, raw_cars)

        logger.info("Car %s deleted", car_id)
        return removed
