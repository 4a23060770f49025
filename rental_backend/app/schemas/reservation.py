"""
Reservation Pydantic schemas.

Defines request and response models for reservations and availability checks.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Union

from rental_backend.app.models.enums import ReservationStatus

# ISO-8601 text or epoch milliseconds
Instant = Union[str, int]


class ReservationCreate(BaseModel):
    """
    Schema for booking a car.

    Required fields are checked by the lifecycle manager so a missing field
    comes back as a 400 with reason ``missing_fields``.
    """
    car_id: Optional[str] = None
    customer_id: Optional[str] = None
    start_at: Optional[Instant] = Field(None, description="Start instant, e.g. 2024-06-01T10:00")
    end_at: Optional[Instant] = Field(None, description="End instant, inclusive")
    price_per_day: Optional[float] = Field(None, description="Defaults to the car's base price")
    discount_percent: Optional[float] = Field(0, description="0-100")
    destination: Optional[str] = ""
    return_time: Optional[str] = None


class ReservationUpdate(BaseModel):
    """
    Schema for amending a reservation.

    ``days``, ``total_price`` and ``status`` are derived and rejected here;
    use the cancel/complete endpoints to change status.
    """
    model_config = ConfigDict(extra="forbid")

    car_id: Optional[str] = None
    customer_id: Optional[str] = None
    start_at: Optional[Instant] = None
    end_at: Optional[Instant] = None
    price_per_day: Optional[float] = None
    discount_percent: Optional[float] = None
    destination: Optional[str] = None
    return_time: Optional[str] = None


class ReservationResponse(BaseModel):
    """Schema for reservation response."""
    id: str
    car_id: str
    customer_id: str
    start_at: Optional[Instant]
    end_at: Optional[Instant]
    price_per_day: float
    discount_percent: float
    days: int
    total_price: int
    destination: str
    return_time: Optional[str]
    status: ReservationStatus
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class AvailabilityCheck(BaseModel):
    """Body of POST /reservations/check."""
    car_id: Optional[str] = None
    start_at: Optional[Instant] = None
    end_at: Optional[Instant] = None
    exclude_id: Optional[str] = Field(None, description="Reservation being edited")


class AvailabilityResponse(BaseModel):
    available: bool
    overlap: bool
