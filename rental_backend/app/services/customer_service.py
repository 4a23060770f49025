"""
Customer Service.
"""

import logging
from typing import Any, List, Mapping

from rental_backend.app.core.clock import Clock, new_id
from rental_backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from rental_backend.app.db.repository import CollectionRepository
from rental_backend.app.models.customer import Customer
from rental_backend.app.models.document import find_index, parse_records
from rental_backend.app.models.enums import Collection, ReservationStatus
from rental_backend.app.models.reservation import Reservation

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("first_name", "last_name", "phone", "email")


class CustomerService:

    @staticmethod
    async def list_customers(repository: CollectionRepository) -> List[Customer]:
        return parse_records(await repository.load_all(Collection.CUSTOMERS), Customer)

    @staticmethod
    async def get_customer(repository: CollectionRepository, customer_id: str) -> Customer:
        for customer in await CustomerService.list_customers(repository):
            if customer.id == customer_id:
                return customer
        raise ResourceNotFoundError("Customer", customer_id)

    @staticmethod
    async def create_customer(repository: CollectionRepository, clock: Clock, data: Mapping[str, Any]) -> Customer:
        now = clock.now()
        customer = Customer(
            id=new_id(),
            **{name: (data.get(name) or "").strip() for name in EDITABLE_FIELDS},
            created_at=now,
            updated_at=now
        )

        async with repository.lock(Collection.CUSTOMERS):
            raw_customers = await repository.load_all(Collection.CUSTOMERS)
            raw_customers.append(customer.to_record())
            await repository.save_all(Collection.CUSTOMERS, raw_customers)

        logger.info("Customer %s created", customer.id)
        return customer

    @staticmethod
    async def update_customer(
        repository: CollectionRepository,
        clock: Clock,
        customer_id: str,
        patch: Mapping[str, Any]
    ) -> Customer:
        changes = {name: (value or "") for name, value in patch.items() if name in EDITABLE_FIELDS}

        async with repository.lock(Collection.CUSTOMERS):
            raw_customers = await repository.load_all(Collection.CUSTOMERS)
            index = find_index(raw_customers, customer_id)
            if index < 0:
                raise ResourceNotFoundError("Customer", customer_id)

            customer = Customer.model_validate({**raw_customers[index], **changes, "updated_at": clock.now()})
            raw_customers[index] = {**raw_customers[index], **customer.to_record()}
            await repository.save_all(Collection.CUSTOMERS, raw_customers)

        return customer

    @staticmethod
    async def delete_customer(repository: CollectionRepository, customer_id: str) -> Customer:
        """Remove a customer. Refused while the customer has BOOKED reservations."""
        async with repository.lock(Collection.RESERVATIONS):
            reservations = parse_records(await repository.load_all(Collection.RESERVATIONS), Reservation)
            booked = [
                r.id for r in reservations
                if r.customer_id == customer_id and r.status == ReservationStatus.BOOKED
            ]

            async with repository.lock(Collection.CUSTOMERS):
                raw_customers = await repository.load_all(Collection.CUSTOMERS)
                index = find_index(raw_customers, customer_id)
                if index < 0:
                    raise ResourceNotFoundError("Customer", customer_id)
                if booked:
                    raise ConflictError(
                        "Customer has booked reservations",
                        reason="customer_has_reservations",
                        details={"reservation_ids": booked}
                    )

                removed = Customer.model_validate(raw_customers.pop(index))
                await repository.save_all(Collection.CUSTOMERS, raw_customers)

        logger.info("Customer %s deleted", customer_id)
        return removed
