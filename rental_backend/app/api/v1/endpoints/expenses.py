"""
Expense API Endpoints.

General ledger under /admin-expenses, car ledger under /car-expenses. The
old mixed /expenses routes answer 410 Gone.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import Response
from typing import Optional

from rental_backend.app.core.clock import Clock
from rental_backend.app.core.config import settings
from rental_backend.app.core.dependencies import get_clock, get_optional_user
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.models.user import User
from rental_backend.app.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseResponse, ExpenseListResponse
from rental_backend.app.services.expense_service import ExpenseService, Ledger
from rental_backend.app.services.notification_service import get_notifier

admin_router = APIRouter(tags=["Expenses - General"])
car_router = APIRouter(tags=["Expenses - Cars"])
legacy_router = APIRouter(tags=["Expenses - Legacy"])

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


async def _month_listing(
    repository: CollectionRepository,
    clock: Clock,
    ledger: Ledger,
    month: Optional[str],
    car_id: Optional[str] = None
) -> ExpenseListResponse:
    summary = await ExpenseService.month_summary(
        repository, ledger, month, settings.timezone, clock.now(), car_id=car_id
    )
    return ExpenseListResponse(
        items=[expense.to_record() for expense in summary.items],
        total=summary.total,
        count=summary.count,
        month_start=summary.start,
        month_end=summary.end
    )


async def _csv_response(repository: CollectionRepository, ledger: Ledger, filename: str) -> Response:
    body = await ExpenseService.export_csv(repository, ledger)
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


# --- General ledger ---

@admin_router.get("/admin-expenses", response_model=ExpenseListResponse)
async def list_admin_expenses(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current month"),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """General expenses of one month with their total."""
    return await _month_listing(repository, clock, Ledger.GENERAL, month)


@admin_router.get("/admin-expenses.csv")
async def export_admin_expenses(repository: CollectionRepository = Depends(get_repository)):
    return await _csv_response(repository, Ledger.GENERAL, "admin-expenses.csv")


@admin_router.post("/admin-expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_expense(
    expense_data: ExpenseCreate,
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    notifier=Depends(get_notifier),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Record a general expense. Sending a car_id is rejected."""
    return await ExpenseService.create_expense(
        repository, clock, Ledger.GENERAL, expense_data.model_dump(),
        tz=settings.timezone,
        notifier=notifier,
        actor=current_user.email if current_user else None
    )


@admin_router.patch("/admin-expenses/{expense_id}", response_model=ExpenseResponse)
async def update_admin_expense(
    expense_data: ExpenseUpdate,
    expense_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    return await ExpenseService.update_expense(
        repository, clock, Ledger.GENERAL, expense_id,
        expense_data.model_dump(exclude_unset=True), tz=settings.timezone
    )


@admin_router.delete("/admin-expenses/{expense_id}", response_model=ExpenseResponse)
async def delete_admin_expense(
    expense_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    return await ExpenseService.delete_expense(repository, Ledger.GENERAL, expense_id)


# --- Car ledger ---

@car_router.get("/car-expenses", response_model=ExpenseListResponse)
async def list_car_expenses(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current month"),
    car_id: Optional[str] = Query(None, description="Only this car"),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    """Car expenses of one month, optionally for a single car."""
    return await _month_listing(repository, clock, Ledger.CAR, month, car_id=(car_id or "").strip() or None)


@car_router.get("/car-expenses.csv")
async def export_car_expenses(repository: CollectionRepository = Depends(get_repository)):
    return await _csv_response(repository, Ledger.CAR, "car-expenses.csv")


@car_router.post("/car-expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_car_expense(
    expense_data: ExpenseCreate,
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    notifier=Depends(get_notifier),
    current_user: Optional[User] = Depends(get_optional_user)
):
    """Record a car expense. car_id is required."""
    return await ExpenseService.create_expense(
        repository, clock, Ledger.CAR, expense_data.model_dump(),
        tz=settings.timezone,
        notifier=notifier,
        actor=current_user.email if current_user else None
    )


@car_router.patch("/car-expenses/{expense_id}", response_model=ExpenseResponse)
async def update_car_expense(
    expense_data: ExpenseUpdate,
    expense_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock)
):
    return await ExpenseService.update_expense(
        repository, clock, Ledger.CAR, expense_id,
        expense_data.model_dump(exclude_unset=True), tz=settings.timezone
    )


@car_router.delete("/car-expenses/{expense_id}", response_model=ExpenseResponse)
async def delete_car_expense(
    expense_id: str = Path(...),
    repository: CollectionRepository = Depends(get_repository)
):
    return await ExpenseService.delete_expense(repository, Ledger.CAR, expense_id)


# --- Legacy mixed ledger ---

@legacy_router.api_route("/expenses", methods=ALL_METHODS, include_in_schema=False)
@legacy_router.api_route("/expenses.csv", methods=ALL_METHODS, include_in_schema=False)
@legacy_router.api_route("/expenses/{expense_id}", methods=ALL_METHODS, include_in_schema=False)
async def legacy_expenses_gone():
    raise HTTPException(
        status_code=status.HTTP_410_GONE,
        detail="Use /admin-expenses or /car-expenses"
    )
