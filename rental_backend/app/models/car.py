"""
Car document.
"""

import re
from datetime import datetime
from typing import Optional

from rental_backend.app.models.document import Document
from rental_backend.app.models.enums import CarStatus


def normalize_plate(plate: Optional[str]) -> str:
    """Upper-case a plate and drop everything but letters and digits."""
    return re.sub(r"[^A-Z0-9]", "", str(plate or "").upper())


class Car(Document):
    """
    Car document.

    ``status`` is a cache of the status engine's result over this car's
    reservations; it is rewritten after every reservation write.
    """
    brand: str = ""
    model: str = ""
    year: Optional[int] = None
    plate: str = ""
    vin: Optional[str] = None

    base_price_per_day: float = 0

    status: CarStatus = CarStatus.FREE

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def title(self) -> str:
        return " - ".join(part for part in (self.brand or self.model, self.plate) if part)
