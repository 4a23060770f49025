"""
FastAPI dependencies.

Collaborators (repository, clock, notifier, session store) are provided
through dependencies so tests can override each one. Also protects routes
with session-token authentication.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from rental_backend.app.core.clock import Clock
from rental_backend.app.core.config import settings
from rental_backend.app.core.sessions import SessionStore, get_session_store
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.models.document import parse_records
from rental_backend.app.models.enums import Collection
from rental_backend.app.models.user import User
from rental_backend.app.services.notification_service import get_notifier
from rental_backend.app.services.reservation_lifecycle import ReservationLifecycleManager

# HTTP Bearer security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

_clock = Clock()


def get_clock() -> Clock:
    return _clock


def get_lifecycle_manager(
    repository: CollectionRepository = Depends(get_repository),
    clock: Clock = Depends(get_clock),
    notifier=Depends(get_notifier)
) -> ReservationLifecycleManager:
    return ReservationLifecycleManager(
        repository,
        clock,
        notifier,
        timezone=settings.timezone,
        include_terminal=settings.terminal_reservations_block,
        guard_ms=settings.turnover_guard_minutes * 60 * 1000
    )


async def _resolve_user(
    token: str,
    repository: CollectionRepository,
    sessions: SessionStore
) -> Optional[User]:
    user_id = await sessions.get(token)
    if not user_id:
        return None
    for user in parse_records(await repository.load_all(Collection.USERS), User):
        if user.id == user_id:
            return user
    return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    repository: CollectionRepository = Depends(get_repository),
    sessions: SessionStore = Depends(get_session_store)
) -> User:
    """
    FastAPI dependency for session authentication.

    Checks:
    1. The bearer token maps to a live session
    2. The session's user still exists
    3. The user is still active

    Raises:
        HTTPException: 401 if the session is unknown, 403 if the user is inactive
    """
    user = await _resolve_user(credentials.credentials, repository, sessions)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    repository: CollectionRepository = Depends(get_repository),
    sessions: SessionStore = Depends(get_session_store)
) -> Optional[User]:
    """Acting user when a valid token is presented, else None. Never rejects."""
    if credentials is None:
        return None
    user = await _resolve_user(credentials.credentials, repository, sessions)
    if user is None or not user.is_active:
        return None
    return user
