"""
Authentication API endpoints.

Provides login, logout and user info endpoints for back-office clients.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from rental_backend.app.core.dependencies import get_current_user, security
from rental_backend.app.core.security import verify_password
from rental_backend.app.core.sessions import SessionStore, get_session_store
from rental_backend.app.db.repository import CollectionRepository, get_repository
from rental_backend.app.models.document import parse_records
from rental_backend.app.models.enums import Collection
from rental_backend.app.models.user import User
from rental_backend.app.schemas.auth import UserLogin, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    repository: CollectionRepository = Depends(get_repository),
    sessions: SessionStore = Depends(get_session_store)
):
    """
    Login user and open a session.

    Logs failed login attempts for security monitoring.
    """
    email = credentials.email.lower()
    users = parse_records(await repository.load_all(Collection.USERS), User)
    user = next((u for u in users if u.email.lower() == email), None)

    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("Login refused for inactive user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    token = await sessions.create(user.id)
    logger.info("User %s logged in", user.id)

    return TokenResponse(
        access_token=token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the logged-in user."""
    return current_user


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    current_user: User = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store)
):
    """Revoke the presented token. It stops working immediately."""
    await sessions.revoke(credentials.credentials)
    logger.info("User %s logged out", current_user.id)
