"""
Clock and identity providers.

Both are injected into services so status derivation and id assignment can
be pinned in tests.
"""

import uuid
from datetime import datetime, timezone


class Clock:
    """Wall clock returning timezone-aware UTC instants."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant. Naive instants are taken as UTC."""

    def __init__(self, instant: datetime):
        self.set(instant)

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant


def new_id() -> str:
    """Opaque unique id for reservations, cars, customers and ledger entries."""
    return uuid.uuid4().hex
