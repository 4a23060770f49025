"""
Customer document.
"""

from datetime import datetime
from typing import Optional

from rental_backend.app.models.document import Document


class Customer(Document):
    """Rental customer."""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
