"""
Reservation document.

A time-bounded claim on one car by one customer. Instants are kept exactly
as supplied (ISO-8601 text) and parsed on use, so a corrupt value only
disables the record it belongs to.
"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import field_validator, model_validator

from rental_backend.app.models.document import Document
from rental_backend.app.models.enums import ReservationStatus


class Reservation(Document):
    """
    Reservation document.

    ``days`` and ``total_price`` are derived by the lifecycle manager and are
    never accepted from clients.
    """
    car_id: str
    customer_id: str
    start_at: Optional[Union[str, int]] = None
    end_at: Optional[Union[str, int]] = None

    price_per_day: float = 0
    discount_percent: float = 0
    days: int = 1
    total_price: int = 0

    destination: str = ""
    return_time: Optional[str] = None

    status: ReservationStatus = ReservationStatus.BOOKED

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_date_keys(cls, data: Any) -> Any:
        # Early records used start_date/end_date
        if isinstance(data, dict):
            for new_key, old_key in (("start_at", "start_date"), ("end_at", "end_date")):
                if data.get(new_key) is None and data.get(old_key) is not None:
                    data = {**data, new_key: data[old_key]}
        return data

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if value is None or value == "":
            return ReservationStatus.BOOKED
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @property
    def is_live(self) -> bool:
        return not self.status.is_terminal
