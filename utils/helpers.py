"""Helper utility functions for MongoDB documents."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel


def to_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """Return an ObjectId for a valid id string, None otherwise."""
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def to_mongo(value: Any) -> Any:
    """Make a model dump storable: calendar dates become YYYY-MM-DD strings.

    Enums become their values and nested models are dumped. Datetimes are
    left alone because BSON stores them natively.
    """
    if isinstance(value, BaseModel):
        return to_mongo(value.model_dump())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_mongo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_mongo(item) for item in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


def document_serializer(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Serialize a MongoDB document: `_id` becomes the string `id`."""
    if not document:
        return None
    document = dict(document)
    if "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document
