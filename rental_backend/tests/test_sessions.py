"""
Session store tests for both backends.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rental_backend.app.core.exceptions import StorageError
from rental_backend.app.core.sessions import InMemorySessionStore, RedisSessionStore, SESSION_PREFIX


async def test_in_memory_round_trip(sessions):
    token = await sessions.create("u-1")
    assert await sessions.get(token) == "u-1"
    assert await sessions.revoke(token) is True
    assert await sessions.get(token) is None
    assert await sessions.revoke(token) is False


async def test_in_memory_tokens_are_unique(sessions):
    tokens = {await sessions.create("u-1") for _ in range(20)}
    assert len(tokens) == 20


async def test_in_memory_expiry():
    store = InMemorySessionStore(ttl_seconds=0)
    token = await store.create("u-1")
    assert await store.get(token) is None


async def test_unknown_token(sessions):
    assert await sessions.get("nope") is None


async def test_redis_store_sets_ttl(mock_redis):
    store = RedisSessionStore(mock_redis, ttl_seconds=600)
    token = await store.create("u-1")

    key = f"{SESSION_PREFIX}{token}"
    assert mock_redis.store[key] == "u-1"
    assert mock_redis.expiry[key] == 600
    assert await store.get(token) == "u-1"


async def test_redis_store_decodes_bytes(mock_redis):
    store = RedisSessionStore(mock_redis, ttl_seconds=600)
    mock_redis.store[f"{SESSION_PREFIX}abc"] = b"u-2"
    assert await store.get("abc") == "u-2"


async def test_redis_store_revoke(mock_redis):
    store = RedisSessionStore(mock_redis, ttl_seconds=600)
    token = await store.create("u-1")
    assert await store.revoke(token) is True
    assert await store.get(token) is None
    assert await store.revoke(token) is False


async def test_redis_outage_raises_storage_error(mock_redis, mocker):
    store = RedisSessionStore(mock_redis, ttl_seconds=600)
    mocker.patch.object(mock_redis, "get", side_effect=RedisConnectionError("down"))
    mocker.patch.object(mock_redis, "set", side_effect=RedisConnectionError("down"))

    with pytest.raises(StorageError) as exc_info:
        await store.get("abc")
    assert exc_info.value.details["operation"] == "read"

    with pytest.raises(StorageError) as exc_info:
        await store.create("u-1")
    assert exc_info.value.details["operation"] == "write"


async def test_redis_outage_on_me_is_503(client, mock_redis, mocker):
    from rental_backend.app.core.sessions import get_session_store
    from rental_backend.app.main import app

    store = RedisSessionStore(mock_redis, ttl_seconds=600)
    mocker.patch.object(mock_redis, "get", side_effect=RedisConnectionError("down"))
    app.dependency_overrides[get_session_store] = lambda: store

    response = await client.get("/v1/auth/me", headers={"Authorization": "Bearer abc"})
    assert response.status_code == 503


async def test_health_reports_redis_down(client, mocker):
    from rental_backend.app.core.config import settings

    mocker.patch.object(settings, "session_backend", "redis")
    mocker.patch("rental_backend.app.core.redis_client.ping_redis", return_value=False)

    response = await client.get("/health")
    assert response.json()["status"] == "degraded"
    assert response.json()["redis"] == "down"
