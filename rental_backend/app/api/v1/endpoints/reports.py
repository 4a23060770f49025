"""
Report API Endpoints.

Monthly revenue and plate search. READ-ONLY.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from rental_backend.app.core.clock import Clock
from rental_backend.app.core.config import settings
from rental_backend.app.core.dependencies import get_clock
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.schemas.report import RevenueResponse, SearchResponse
from rental_backend.app.services.revenue_service import RevenueService
from rental_backend.app.services.search_service import SearchService

router = APIRouter(tags=["Reports"])


@router.get("/revenue", response_model=RevenueResponse)
async def get_revenue(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current month"),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """Reservations overlapping the month, with car and customer details and the total."""
    return await RevenueService.monthly_revenue(repository, month, settings.timezone, clock.now())


@router.get("/search", response_model=SearchResponse)
async def search_by_plate(
    plate: str = Query("", description="Plate, any case or punctuation"),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """Find a car by plate with its current and next reservation."""
    return await SearchService.search_by_plate(repository, plate, clock.now(), settings.timezone)
