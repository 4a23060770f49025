"""
Expense Pydantic schemas.

Shared by the general and the car ledger.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional


class ExpenseCreate(BaseModel):
    """
    Schema for recording an expense.

    ``car_id`` is required on the car ledger and rejected on the general one.
    ``when`` defaults to the time of creation.
    """
    car_id: Optional[str] = None
    title: str = Field("", max_length=200)
    payee: str = Field("", max_length=200)
    purpose: str = Field("", max_length=500)
    amount: float = 0
    when: Optional[str] = Field(None, description="ISO-8601 instant the money moved")


class ExpenseUpdate(BaseModel):
    car_id: Optional[str] = Field(None, description="Ignored on the general ledger")
    title: Optional[str] = Field(None, max_length=200)
    payee: Optional[str] = Field(None, max_length=200)
    purpose: Optional[str] = Field(None, max_length=500)
    amount: Optional[float] = None
    when: Optional[str] = None


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: str
    car_id: Optional[str]
    title: str
    payee: str
    purpose: str
    amount: float
    when: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    """Entries of one month with their sum."""
    items: List[ExpenseResponse]
    total: float
    count: int
    month_start: datetime
    month_end: datetime
