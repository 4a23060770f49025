"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from rental_backend.app.api.v1.endpoints import (
    auth, cars, customers, reservations, expenses, reports, notifications
)

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Fleet and customers
router.include_router(cars.router)
router.include_router(customers.router)

# Scheduling
router.include_router(reservations.router)

# Ledgers
router.include_router(expenses.admin_router)
router.include_router(expenses.car_router)
router.include_router(expenses.legacy_router)

# Reports
router.include_router(reports.router)

router.include_router(notifications.router)
