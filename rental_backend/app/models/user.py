"""
User document.

Back-office accounts allowed to log in.
"""

from datetime import datetime
from typing import Optional

from rental_backend.app.models.document import Document
from rental_backend.app.models.enums import UserRole


class User(Document):
    """Back-office user."""
    email: str
    password_hash: str
    role: UserRole = UserRole.STAFF
    is_active: bool = True

    created_at: Optional[datetime] = None

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
