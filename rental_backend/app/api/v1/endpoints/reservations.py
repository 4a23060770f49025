"""
Reservation API Endpoints.

Thin layer over the reservation lifecycle manager.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional

from rental_backend.app.core.dependencies import get_lifecycle_manager
from rental_backend.app.schemas.reservation import (
    AvailabilityCheck, AvailabilityResponse,
    ReservationCreate, ReservationUpdate, ReservationResponse
)
from rental_backend.app.services.reservation_lifecycle import ReservationLifecycleManager

router = APIRouter(prefix="/reservations", tags=["Reservations"])


async def _availability(manager: ReservationLifecycleManager, check: AvailabilityCheck) -> AvailabilityResponse:
    available = await manager.check_availability(check.car_id, check.start_at, check.end_at, check.exclude_id)
    return AvailabilityResponse(available=available, overlap=not available)


# /check must be registered before /{reservation_id}
@router.get("/check", response_model=AvailabilityResponse)
async def check_availability(
    car_id: Optional[str] = Query(None),
    start_at: Optional[str] = Query(None),
    end_at: Optional[str] = Query(None),
    exclude_id: Optional[str] = Query(None),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    """Would this interval be accepted for this car?"""
    check = AvailabilityCheck(car_id=car_id, start_at=start_at, end_at=end_at, exclude_id=exclude_id)
    return await _availability(manager, check)


@router.post("/check", response_model=AvailabilityResponse)
async def check_availability_post(
    check: AvailabilityCheck,
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    return await _availability(manager, check)


@router.get("", response_model=List[ReservationResponse])
async def list_reservations(manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)):
    return await manager.list_reservations()


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    """
    Book a car.

    Returns 409 with reason ``overlap`` when the car is already booked in
    any part of the interval (boundaries included).
    """
    return await manager.create_reservation(reservation_data.model_dump())


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    return await manager.get_reservation(reservation_id)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def amend_reservation(
    reservation_data: ReservationUpdate,
    reservation_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    """Change car, customer, interval or pricing inputs of a booked reservation."""
    return await manager.amend_reservation(reservation_id, reservation_data.model_dump(exclude_unset=True))


@router.post("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    return await manager.cancel_reservation(reservation_id)


@router.post("/{reservation_id}/complete", response_model=ReservationResponse)
async def complete_reservation(
    reservation_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    return await manager.complete_reservation(reservation_id)


@router.delete("/{reservation_id}", response_model=ReservationResponse)
async def delete_reservation(
    reservation_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    """Remove a reservation for good. Returns the removed record."""
    return await manager.delete_reservation(reservation_id)
