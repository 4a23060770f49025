"""
Collection repository.

The storage collaborator of the scheduling core. A collection is read as a
whole and written back as a whole; the core never updates single rows.

Concurrency:
    Each collection has one asyncio.Lock. Writers hold it for their entire
    read-modify-write cycle so two writers to the same collection are
    serialized. Readers do not lock; every read runs in its own transaction
    and sees a consistent snapshot.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Union

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental_backend.app.core.exceptions import StorageError
from rental_backend.app.db.session import AsyncSessionLocal
from rental_backend.app.models.enums import Collection
from rental_backend.app.models.stored_record import StoredRecord

logger = logging.getLogger(__name__)

CollectionName = Union[Collection, str]


def _name(collection: CollectionName) -> str:
    return collection.value if isinstance(collection, Collection) else str(collection)


class CollectionRepository:
    """Full-collection load/save over the ``collection_records`` table."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, collection: CollectionName) -> asyncio.Lock:
        """
        Write lock for a collection.

        Lock order across collections is reservations before cars.
        """
        name = _name(collection)
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    async def load_all(self, collection: CollectionName) -> List[Dict[str, Any]]:
        """
        Load every record of a collection in stored order.

        Raises:
            StorageError: If the read fails
        """
        name = _name(collection)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(StoredRecord.payload)
                    .where(StoredRecord.collection == name)
                    .order_by(StoredRecord.position)
                )
                return [dict(payload) for payload in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Failed to load collection %s: %s", name, exc)
            raise StorageError(name, "read") from exc

    async def save_all(self, collection: CollectionName, records: List[Dict[str, Any]]) -> None:
        """
        Replace a collection with ``records`` in one transaction.

        Either the whole new sequence is stored or the old one is left as it was.

        Raises:
            StorageError: If the write fails
        """
        await self.save_many({collection: records})

    async def save_many(self, collections: Mapping[CollectionName, List[Dict[str, Any]]]) -> None:
        """
        Replace several collections in a single transaction.

        Raises:
            StorageError: If any write fails; none of the collections change
        """
        names = [_name(collection) for collection in collections]
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    for collection, records in collections.items():
                        await self._replace(session, _name(collection), records)
        except SQLAlchemyError as exc:
            logger.error("Failed to save collections %s: %s", ", ".join(names), exc)
            raise StorageError(", ".join(names), "write") from exc

    @staticmethod
    async def _replace(session: AsyncSession, name: str, records: List[Dict[str, Any]]) -> None:
        await session.execute(delete(StoredRecord).where(StoredRecord.collection == name))
        session.add_all([
            StoredRecord(
                collection=name,
                position=position,
                record_id=record.get("id"),
                payload=record
            )
            for position, record in enumerate(records)
        ])
        await session.flush()


repository = CollectionRepository(AsyncSessionLocal)


def get_repository() -> CollectionRepository:
    """
    Get the application repository.

    Used as a FastAPI dependency so tests can swap in their own store.
    """
    return repository
