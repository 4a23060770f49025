"""
Session store for back-office logins.

A login issues an opaque random token mapped to the user id. Logging out
deletes the mapping, so a revoked token stops working immediately. The
in-memory backend suits a single process; the Redis backend shares
sessions across workers.
"""

import secrets
import time
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from redis.exceptions import RedisError

from rental_backend.app.core.config import Settings, settings
from rental_backend.app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

# Redis key prefix for live sessions
SESSION_PREFIX = "session:"


def new_token() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Maps opaque bearer tokens to user ids."""

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def create(self, user_id: str) -> str:
        """Open a session and return its token."""

    @abstractmethod
    async def get(self, token: str) -> Optional[str]:
        """User id for a live token, None if unknown or expired."""

    @abstractmethod
    async def revoke(self, token: str) -> bool:
        """Close a session. Returns False if it did not exist."""


class InMemorySessionStore(SessionStore):
    def __init__(self, ttl_seconds: int):
        super().__init__(ttl_seconds)
        self._sessions: Dict[str, Tuple[str, float]] = {}

    async def create(self, user_id: str) -> str:
        token = new_token()
        self._sessions[token] = (user_id, time.monotonic() + self.ttl_seconds)
        return token

    async def get(self, token: str) -> Optional[str]:
        entry = self._sessions.get(token)
        if entry is None:
            return None
        user_id, expires_at = entry
        if time.monotonic() >= expires_at:
            self._sessions.pop(token, None)
            return None
        return user_id

    async def revoke(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None


class RedisSessionStore(SessionStore):
    def __init__(self, client, ttl_seconds: int):
        super().__init__(ttl_seconds)
        self.client = client

    async def create(self, user_id: str) -> str:
        token = new_token()
        try:
            await self.client.set(f"{SESSION_PREFIX}{token}", user_id, ex=self.ttl_seconds)
        except RedisError as exc:
            logger.error("Could not store session: %s", exc)
            raise StorageError("sessions", "write") from exc
        return token

    async def get(self, token: str) -> Optional[str]:
        try:
            value = await self.client.get(f"{SESSION_PREFIX}{token}")
        except RedisError as exc:
            logger.error("Could not read session: %s", exc)
            raise StorageError("sessions", "read") from exc
        if isinstance(value, bytes):
            value = value.decode()
        return value

    async def revoke(self, token: str) -> bool:
        try:
            return bool(await self.client.delete(f"{SESSION_PREFIX}{token}"))
        except RedisError as exc:
            logger.error("Could not revoke session: %s", exc)
            raise StorageError("sessions", "write") from exc


def build_session_store(config: Settings) -> SessionStore:
    ttl_seconds = config.session_ttl_minutes * 60
    if config.session_backend.lower() == "redis":
        from rental_backend.app.core.redis_client import redis_client
        return RedisSessionStore(redis_client, ttl_seconds)
    return InMemorySessionStore(ttl_seconds)


session_store = build_session_store(settings)


def get_session_store() -> SessionStore:
    return session_store
