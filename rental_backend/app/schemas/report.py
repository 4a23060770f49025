"""
Revenue report and plate search schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional, Union

from rental_backend.app.models.enums import CarStatus, ReservationStatus
from rental_backend.app.schemas.reservation import ReservationResponse


class RevenueCar(BaseModel):
    plate: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None


class RevenueCustomer(BaseModel):
    name: str = ""
    phone: str = ""


class RevenueItem(ReservationResponse):
    """A reservation overlapping the month, with its car and customer."""
    car: RevenueCar
    customer: RevenueCustomer


class RevenueResponse(BaseModel):
    month_start: datetime
    month_end: datetime
    items: List[RevenueItem]
    total: int
    count: int


class SearchCar(BaseModel):
    id: str
    plate: str
    brand: str
    model: str
    status: CarStatus


class SearchReservation(BaseModel):
    id: str
    start_at: Optional[Union[str, int]]
    end_at: Optional[Union[str, int]]
    status: ReservationStatus
    days: int
    price_per_day: float
    discount_percent: float
    total_price: int
    destination: str
    customer_id: str
    customer_name: Optional[str]


class SearchResponse(BaseModel):
    """Result of a plate lookup."""
    found: bool
    car: SearchCar
    current_reservation: Optional[SearchReservation]
    next_reservation: Optional[SearchReservation]
