"""
Base class for documents stored in collections.
"""

import logging
from typing import Any, Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound="Document")


class Document(BaseModel):
    """A collection record with a string id."""

    model_config = ConfigDict(extra="ignore")

    id: str

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def parse_records(records: Iterable[Dict[str, Any]], model: Type[DocumentT]) -> List[DocumentT]:
    """
    Validate raw records into documents, skipping the ones that do not fit.

    A single corrupt record must not take down a whole scan.
    """
    documents = []
    for record in records:
        try:
            documents.append(model.model_validate(record))
        except PydanticValidationError as exc:
            logger.warning(
                "Skipping malformed %s record id=%s (%d errors)",
                model.__name__, record.get("id") if isinstance(record, dict) else None, exc.error_count()
            )
    return documents


def find_index(records: List[Dict[str, Any]], record_id: str) -> int:
    """Position of the raw record with ``record_id``, or -1."""
    for index, record in enumerate(records):
        if isinstance(record, dict) and record.get("id") == record_id:
            return index
    return -1
