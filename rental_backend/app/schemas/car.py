"""
Car Pydantic schemas.
"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Dict, Optional

from rental_backend.app.models.enums import CarStatus


class CarCreate(BaseModel):
    """Schema for registering a car. Status is derived, never supplied."""
    brand: str = Field("", max_length=100)
    model: str = Field("", max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    plate: str = Field(..., min_length=1, max_length=20, description="Registration plate")
    vin: Optional[str] = Field(None, max_length=32)
    base_price_per_day: float = Field(0, description="Default daily price for new reservations")


class CarUpdate(BaseModel):
    """Schema for editing a car. There is no status field."""
    model_config = ConfigDict(extra="forbid")

    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    plate: Optional[str] = Field(None, min_length=1, max_length=20)
    vin: Optional[str] = Field(None, max_length=32)
    base_price_per_day: Optional[float] = None


class CarResponse(BaseModel):
    """Schema for car response."""
    id: str
    brand: str
    model: str
    year: Optional[int]
    plate: str
    vin: Optional[str]
    base_price_per_day: float
    status: CarStatus
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class CarStatusResponse(BaseModel):
    car_id: str
    status: CarStatus


class StatusRefreshResponse(BaseModel):
    statuses: Dict[str, CarStatus]
    count: int
