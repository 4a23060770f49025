"""
Reservation Lifecycle Manager.

Owns every reservation write: create, amend, cancel, complete and delete.
Each write runs as one read-modify-write of the reservations collection
under its lock, so the overlap check and the append cannot interleave with
another writer. The cached status of every affected car is re-derived under
the cars lock (always taken second) and saved in the same transaction as the
reservations, so a failed write leaves both collections as they were.

State machine:
    BOOKED -> COMPLETED
    BOOKED -> CANCELED
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from rental_backend.app.core.clock import Clock, new_id
from rental_backend.app.core.exceptions import (
    ConflictError,
    ReservationOverlapError,
    ResourceNotFoundError,
    ValidationError,
)
from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.domain.billing.pricing import price, resolve_unit_price, validate_discount
from rental_backend.app.domain.scheduling.overlap import find_overlap
from rental_backend.app.domain.scheduling.status import compute_status
from rental_backend.app.domain.scheduling.temporal import (
    DEFAULT_TIMEZONE,
    day_count_inclusive,
    format_local,
    to_datetime,
    to_epoch_ms,
)
from rental_backend.app.models.car import Car
from rental_backend.app.models.customer import Customer
from rental_backend.app.models.document import find_index, parse_records
from rental_backend.app.models.enums import ALLOWED_TRANSITIONS, CarStatus, Collection, ReservationStatus
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("car_id", "customer_id", "start_at", "end_at")

# Fields a client may change on an existing reservation
AMENDABLE_FIELDS = frozenset({
    "car_id", "customer_id", "start_at", "end_at",
    "price_per_day", "discount_percent", "destination", "return_time",
})

# Amendable fields where an explicit null clears the value
CLEARABLE_FIELDS = frozenset({"return_time"})

INTERVAL_FIELDS = frozenset({"car_id", "start_at", "end_at"})


class ReservationLifecycleManager:
    """
    Reservation writes plus the availability and status queries around them.

    Args:
        repository: Collection store
        clock: Source of "now" for timestamps and status derivation
        notifier: Object with ``notify(event, fields)``; must not block
        timezone: Business timezone for day counts and naive instants
        include_terminal: Let COMPLETED/CANCELED reservations block new ones
        guard_ms: Turnover guard between back-to-back reservations
    """

    def __init__(
        self,
        repository: CollectionRepository,
        clock: Clock,
        notifier,
        timezone: str = DEFAULT_TIMEZONE,
        include_terminal: bool = False,
        guard_ms: int = 0
    ):
        self.repository = repository
        self.clock = clock
        self.notifier = notifier
        self.timezone = timezone
        self.include_terminal = include_terminal
        self.guard_ms = guard_ms

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_reservations(self) -> List[Reservation]:
        return parse_records(await self.repository.load_all(Collection.RESERVATIONS), Reservation)

    async def get_reservation(self, reservation_id: str) -> Reservation:
        for reservation in await self.list_reservations():
            if reservation.id == reservation_id:
                return reservation
        raise ResourceNotFoundError("Reservation", reservation_id)

    async def check_availability(
        self,
        car_id: Optional[str],
        start_at: Any,
        end_at: Any,
        exclude_id: Optional[str] = None
    ) -> bool:
        """
        True when ``car_id`` is free over [start_at, end_at].

        Runs the same overlap scan as create and amend. An interval that
        cannot be parsed is reported as available; create rejects it anyway.
        """
        reservations = await self.list_reservations()
        conflict = self._find_conflict(reservations, str(car_id or ""), start_at, end_at, exclude_id)
        return conflict is None

    async def resource_status(self, car_id: str) -> CarStatus:
        """Live status of a car, derived from the current reservation set."""
        cars = parse_records(await self.repository.load_all(Collection.CARS), Car)
        if not any(car.id == car_id for car in cars):
            raise ResourceNotFoundError("Car", car_id)
        reservations = await self.list_reservations()
        return compute_status(car_id, reservations, self.clock.now(), self.timezone)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_reservation(self, data: Mapping[str, Any]) -> Reservation:
        """
        Book a car for a customer.

        Raises:
            ValidationError: missing_fields, invalid_dates, invalid_interval,
                invalid_discount, invalid_price, unknown_car, unknown_customer
            ReservationOverlapError: The car is already booked in that interval
            StorageError: The store could not be read or written
        """
        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                reason="missing_fields",
                details={"fields": missing}
            )

        car_id = str(data["car_id"])
        customer_id = str(data["customer_id"])
        start_at = self._instant_text(data["start_at"])
        end_at = self._instant_text(data["end_at"])
        self._validate_interval(start_at, end_at)
        discount = validate_discount(data.get("discount_percent"))

        async with self.repository.lock(Collection.RESERVATIONS):
            raw_reservations = await self.repository.load_all(Collection.RESERVATIONS)
            reservations = parse_records(raw_reservations, Reservation)

            car = await self._require_car(car_id)
            customer = await self._require_customer(customer_id)

            conflict = self._find_conflict(reservations, car_id, start_at, end_at)
            if conflict is not None:
                logger.info("Rejected booking for car %s: overlaps reservation %s", car_id, conflict.id)
                raise ReservationOverlapError(car_id, conflict.id)

            unit_price = resolve_unit_price(data.get("price_per_day"), car)
            days = day_count_inclusive(start_at, end_at, self.timezone)
            now = self.clock.now()

            reservation = Reservation(
                id=new_id(),
                car_id=car_id,
                customer_id=customer_id,
                start_at=start_at,
                end_at=end_at,
                price_per_day=unit_price,
                discount_percent=discount,
                days=days,
                total_price=price(unit_price, days, discount),
                destination=str(data.get("destination") or ""),
                return_time=self._optional_text(data.get("return_time")),
                status=ReservationStatus.BOOKED,
                created_at=now,
                updated_at=now
            )

            raw_reservations.append(reservation.to_record())
            await self._commit(raw_reservations, {car_id}, reservations + [reservation])
            logger.info(
                "Reservation %s created for car %s (%s days, total %s)",
                reservation.id, car_id, days, reservation.total_price
            )

        self._notify_created(reservation, car, customer)
        return reservation

    async def amend_reservation(self, reservation_id: str, patch: Mapping[str, Any]) -> Reservation:
        """
        Apply a partial update to a BOOKED reservation.

        Days and total are recomputed on every amend. The overlap check re-runs
        when the car or either end of the interval changes, excluding the
        reservation itself. On any error the stored record is left untouched.

        Raises:
            ResourceNotFoundError: Unknown reservation id
            ConflictError: reservation_closed, or overlap
            ValidationError: Same reasons as create
        """
        changes = {
            name: value for name, value in patch.items()
            if name in AMENDABLE_FIELDS and (value is not None or name in CLEARABLE_FIELDS)
        }

        async with self.repository.lock(Collection.RESERVATIONS):
            raw_reservations = await self.repository.load_all(Collection.RESERVATIONS)
            index, current = self._locate(raw_reservations, reservation_id)

            if current.status.is_terminal:
                raise ConflictError(
                    f"Reservation is {current.status.value} and can no longer be changed",
                    reason="reservation_closed",
                    details={"status": current.status.value}
                )

            merged = current.model_copy(update=changes)
            for name in REQUIRED_FIELDS:
                if getattr(merged, name) in (None, ""):
                    raise ValidationError(
                        f"Missing required fields: {name}",
                        reason="missing_fields",
                        details={"fields": [name]}
                    )

            start_at = self._instant_text(merged.start_at)
            end_at = self._instant_text(merged.end_at)
            self._validate_interval(start_at, end_at)
            discount = validate_discount(merged.discount_percent)

            car = await self._require_car(merged.car_id)
            if merged.customer_id != current.customer_id:
                await self._require_customer(merged.customer_id)

            reservations = parse_records(raw_reservations, Reservation)
            if INTERVAL_FIELDS & changes.keys():
                conflict = self._find_conflict(reservations, merged.car_id, start_at, end_at, exclude_id=current.id)
                if conflict is not None:
                    logger.info("Rejected amend of %s: overlaps reservation %s", current.id, conflict.id)
                    raise ReservationOverlapError(merged.car_id, conflict.id)

            unit_price = resolve_unit_price(changes.get("price_per_day", current.price_per_day), car)
            days = day_count_inclusive(start_at, end_at, self.timezone)

            updated = merged.model_copy(update={
                "start_at": start_at,
                "end_at": end_at,
                "price_per_day": unit_price,
                "discount_percent": discount,
                "days": days,
                "total_price": price(unit_price, days, discount),
                "updated_at": self.clock.now()
            })

            raw_reservations[index] = {**raw_reservations[index], **updated.to_record()}
            await self._commit(
                raw_reservations,
                {current.car_id, updated.car_id},
                self._replace(reservations, updated)
            )
            logger.info("Reservation %s amended", updated.id)

        return updated

    async def cancel_reservation(self, reservation_id: str) -> Reservation:
        """Soft-cancel. Cancelling a cancelled reservation is a no-op."""
        return await self._transition(reservation_id, ReservationStatus.CANCELED)

    async def complete_reservation(self, reservation_id: str) -> Reservation:
        return await self._transition(reservation_id, ReservationStatus.COMPLETED)

    async def delete_reservation(self, reservation_id: str) -> Reservation:
        """Remove a reservation for good and return what was removed."""
        async with self.repository.lock(Collection.RESERVATIONS):
            raw_reservations = await self.repository.load_all(Collection.RESERVATIONS)
            index, removed = self._locate(raw_reservations, reservation_id)

            del raw_reservations[index]
            await self._commit(raw_reservations, {removed.car_id}, parse_records(raw_reservations, Reservation))
            logger.info("Reservation %s deleted", removed.id)

        return removed

    async def refresh_statuses(self) -> Dict[str, CarStatus]:
        """
        Re-derive and persist the cached status of every car.

        Statuses drift as time passes without writes (a future booking
        becomes current), so this runs at startup and on demand.
        """
        async with self.repository.lock(Collection.RESERVATIONS):
            reservations = await self.list_reservations()
            async with self.repository.lock(Collection.CARS):
                raw_cars = await self.repository.load_all(Collection.CARS)
                statuses, changed = self._apply_statuses(raw_cars, None, reservations)
                if changed:
                    await self.repository.save_all(Collection.CARS, raw_cars)
        logger.info("Refreshed status of %d cars (%d changed)", len(statuses), changed)
        return statuses

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transition(self, reservation_id: str, target: ReservationStatus) -> Reservation:
        async with self.repository.lock(Collection.RESERVATIONS):
            raw_reservations = await self.repository.load_all(Collection.RESERVATIONS)
            index, current = self._locate(raw_reservations, reservation_id)

            if current.status == target:
                return current
            if target not in ALLOWED_TRANSITIONS[current.status]:
                raise ConflictError(
                    f"Cannot move reservation from {current.status.value} to {target.value}",
                    reason="invalid_transition",
                    details={"status": current.status.value, "target": target.value}
                )

            updated = current.model_copy(update={"status": target, "updated_at": self.clock.now()})
            raw_reservations[index] = {**raw_reservations[index], **updated.to_record()}
            reservations = self._replace(parse_records(raw_reservations, Reservation), updated)
            await self._commit(raw_reservations, {updated.car_id}, reservations)
            logger.info("Reservation %s is now %s", updated.id, target.value)

        return updated

    def _locate(self, raw_reservations: List[Dict[str, Any]], reservation_id: str) -> Tuple[int, Reservation]:
        index = find_index(raw_reservations, reservation_id)
        if index < 0:
            raise ResourceNotFoundError("Reservation", reservation_id)
        parsed = parse_records([raw_reservations[index]], Reservation)
        if not parsed:
            raise ConflictError(
                "Stored reservation is unreadable",
                reason="corrupt_record",
                details={"id": reservation_id}
            )
        return index, parsed[0]

    def _find_conflict(
        self,
        reservations: Iterable[Reservation],
        car_id: str,
        start_at: Any,
        end_at: Any,
        exclude_id: Optional[str] = None
    ) -> Optional[Reservation]:
        return find_overlap(
            reservations, car_id, start_at, end_at, exclude_id,
            tz=self.timezone,
            include_terminal=self.include_terminal,
            guard_ms=self.guard_ms
        )

    def _validate_interval(self, start_at: Any, end_at: Any) -> None:
        start = to_epoch_ms(start_at, self.timezone)
        end = to_epoch_ms(end_at, self.timezone)
        if start is None or end is None:
            raise ValidationError(
                "Start and end must be valid dates",
                reason="invalid_dates",
                details={"start_at": start_at, "end_at": end_at}
            )
        if end < start:
            raise ValidationError(
                "Reservation cannot end before it starts",
                reason="invalid_interval",
                details={"start_at": start_at, "end_at": end_at}
            )

    def _instant_text(self, value: Any) -> Any:
        """Keep strings and epoch numbers as given; serialize date and datetime objects."""
        if isinstance(value, (date, datetime)):
            parsed = to_datetime(value, self.timezone)
            return parsed.isoformat() if parsed else value
        return value

    @staticmethod
    def _optional_text(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @staticmethod
    def _replace(reservations: List[Reservation], updated: Reservation) -> List[Reservation]:
        return [updated if reservation.id == updated.id else reservation for reservation in reservations]

    async def _require_car(self, car_id: str) -> Car:
        for car in parse_records(await self.repository.load_all(Collection.CARS), Car):
            if car.id == car_id:
                return car
        raise ValidationError("Unknown car", reason="unknown_car", details={"car_id": car_id})

    async def _require_customer(self, customer_id: str) -> Customer:
        for customer in parse_records(await self.repository.load_all(Collection.CUSTOMERS), Customer):
            if customer.id == customer_id:
                return customer
        raise ValidationError("Unknown customer", reason="unknown_customer", details={"customer_id": customer_id})

    def _apply_statuses(
        self,
        raw_cars: List[Dict[str, Any]],
        car_ids: Optional[Set[str]],
        reservations: List[Reservation]
    ) -> Tuple[Dict[str, CarStatus], int]:
        """Rewrite ``status`` in place on the raw car records. Returns statuses and the change count."""
        now = self.clock.now()
        statuses: Dict[str, CarStatus] = {}
        changed = 0
        for index, record in enumerate(raw_cars):
            if not isinstance(record, dict) or not record.get("id"):
                continue
            car_id = record["id"]
            if car_ids is not None and car_id not in car_ids:
                continue
            status = compute_status(car_id, reservations, now, self.timezone)
            statuses[car_id] = status
            if record.get("status") != status.value:
                raw_cars[index] = {**record, "status": status.value, "updated_at": now.isoformat()}
                changed += 1
        return statuses, changed

    async def _commit(
        self,
        raw_reservations: List[Dict[str, Any]],
        car_ids: Set[str],
        reservations: List[Reservation]
    ) -> None:
        """
        Save the reservations together with the re-derived status of ``car_ids``.

        Caller holds the reservations lock. Both collections are written in
        one transaction; on a StorageError neither has changed.
        """
        async with self.repository.lock(Collection.CARS):
            raw_cars = await self.repository.load_all(Collection.CARS)
            _, changed = self._apply_statuses(raw_cars, car_ids, reservations)
            collections = {Collection.RESERVATIONS: raw_reservations}
            if changed:
                collections[Collection.CARS] = raw_cars
            await self.repository.save_many(collections)

    def _notify_created(self, reservation: Reservation, car: Car, customer: Customer) -> None:
        discount = f"{reservation.discount_percent:g}%"
        try:
            self.notifier.notify("reservation.created", {
                "Car": car.title,
                "Customer": customer.full_name,
                "Start": format_local(reservation.start_at, self.timezone),
                "End": format_local(reservation.end_at, self.timezone),
                "Return time": reservation.return_time or "",
                "Destination": reservation.destination,
                "Discount": discount,
                "Total price": reservation.total_price,
            })
        except Exception:
            logger.exception("Notifier failed for reservation %s", reservation.id)
