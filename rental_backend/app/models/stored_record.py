"""
Stored Record database model.

Every document collection (cars, reservations, ledgers, ...) lives in one
table. A collection is always rewritten as a whole, so rows carry their
position to keep the collection's order stable.
"""

from sqlalchemy import Column, Integer, String, JSON, Index
from rental_backend.app.db.session import Base


class StoredRecord(Base):
    """One document in a named collection."""
    __tablename__ = "collection_records"

    id = Column(Integer, primary_key=True, autoincrement=True)

    collection = Column(String(50), nullable=False)
    position = Column(Integer, nullable=False)
    record_id = Column(String(64), nullable=True)

    payload = Column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_collection_records_collection_position", "collection", "position"),
    )

    def __repr__(self):
        return f"<StoredRecord(collection='{self.collection}', position={self.position}, record_id='{self.record_id}')>"
