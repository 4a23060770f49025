"""
Customer API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, status
from typing import List

from rental_backend.app.core.clock import Clock
from rental_backend.app.core.dependencies import get_clock
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.schemas.customer import CustomerCreate, CustomerUpdate, CustomerResponse
from rental_backend.app.services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("", response_model=List[CustomerResponse])
async def list_customers(repository: CollectionRepository = Depends(get_repository)):
    return await CustomerService.list_customers(repository)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    return await CustomerService.create_customer(repository, clock, customer_data.model_dump())


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    return await CustomerService.get_customer(repository, customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_data: CustomerUpdate,
    customer_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    return await CustomerService.update_customer(
        repository, clock, customer_id, customer_data.model_dump(exclude_unset=True)
    )


@router.delete("/{customer_id}", response_model=CustomerResponse)
async def delete_customer(
    customer_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    """Delete a customer without booked reservations."""
    return await CustomerService.delete_customer(repository, customer_id)
