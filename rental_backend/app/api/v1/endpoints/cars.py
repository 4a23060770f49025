"""
Car API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, status
from typing import List

from rental_backend.app.core.clock import Clock
from rental_backend.app.core.dependencies import get_clock, get_lifecycle_manager
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.schemas.car import (
    CarCreate, CarUpdate, CarResponse, CarStatusResponse, StatusRefreshResponse
)
from rental_backend.app.services.car_service import CarService
from rental_backend.app.services.reservation_lifecycle import ReservationLifecycleManager

router = APIRouter(prefix="/cars", tags=["Cars"])


@router.get("", response_model=List[CarResponse])
async def list_cars(repository: CollectionRepository = Depends(get_repository)):
    """List all cars with their cached status."""
    return await CarService.list_cars(repository)


@router.post("", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def create_car(
    car_data: CarCreate,
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """Register a new car. Plates must be unique ignoring case and punctuation."""
    return await CarService.create_car(repository, clock, car_data.model_dump())


@router.post("/status/refresh", response_model=StatusRefreshResponse)
async def refresh_car_statuses(manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)):
    """Re-derive every car's status from its reservations and the current time."""
    statuses = await manager.refresh_statuses()
    return StatusRefreshResponse(statuses=statuses, count=len(statuses))


@router.get("/{car_id}", response_model=CarResponse)
async def get_car(
    car_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    return await CarService.get_car(repository, car_id)


@router.get("/{car_id}/status", response_model=CarStatusResponse)
async def get_car_status(
    car_id: str = Path(...),
    manager: ReservationLifecycleManager = Depends(get_lifecycle_manager)
):
    """Live status computed now, independent of the cached value."""
    return CarStatusResponse(car_id=car_id, status=await manager.resource_status(car_id))


@router.patch("/{car_id}", response_model=CarResponse)
async def update_car(
    car_data: CarUpdate,
    car_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """Edit a car. Status cannot be set here."""
    return await CarService.update_car(repository, clock, car_id, car_data.model_dump(exclude_unset=True))


@router.delete("/{car_id}", response_model=CarResponse)
async def delete_car(
    car_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    """Delete a car without booked reservations. Returns the removed car."""
    return await CarService.delete_car(repository, car_id)
