"""
Status and role enumerations.

Defines the lifecycle states shared by the scheduling core and the API.
"""

import enum


class ReservationStatus(str, enum.Enum):
    """
    Reservation lifecycle.

    BOOKED is the only non-terminal state:
        BOOKED -> COMPLETED
        BOOKED -> CANCELED
    """
    BOOKED = "BOOKED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_RESERVATION_STATUSES


TERMINAL_RESERVATION_STATUSES = frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELED})

ALLOWED_TRANSITIONS = {
    ReservationStatus.BOOKED: frozenset({ReservationStatus.COMPLETED, ReservationStatus.CANCELED}),
    ReservationStatus.COMPLETED: frozenset(),
    ReservationStatus.CANCELED: frozenset(),
}


class CarStatus(str, enum.Enum):
    """
    Derived car occupancy.

    Never set by clients; recomputed from the car's live reservations.
    """
    FREE = "FREE"
    RESERVED = "RESERVED"
    IN_USE = "IN_USE"


class UserRole(str, enum.Enum):
    """Back-office user roles."""
    ADMIN = "ADMIN"
    STAFF = "STAFF"


class Collection(str, enum.Enum):
    """Named document collections held by the storage collaborator."""
    CARS = "cars"
    CUSTOMERS = "customers"
    RESERVATIONS = "reservations"
    ADMIN_EXPENSES = "admin_expenses"
    CAR_EXPENSES = "car_expenses"
    LEGACY_EXPENSES = "expenses"
    USERS = "users"
