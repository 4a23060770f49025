"""
Expense ledger entry.

Two disjoint ledgers hold these: general (``admin_expenses``, no car) and
car-scoped (``car_expenses``, car required).
"""

from datetime import datetime
from typing import Optional

from rental_backend.app.models.document import Document


class Expense(Document):
    """
    Expense entry.

    ``when`` is the instant the money moved; it defaults to the creation
    time and is what the period aggregator filters on.
    """
    car_id: Optional[str] = None

    title: str = ""
    payee: str = ""
    purpose: str = ""
    amount: float = 0

    when: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
