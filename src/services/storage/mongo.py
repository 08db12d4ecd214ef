"""MongoDB connection helpers and document serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from bson import ObjectId
from fastapi import Depends
from pymongo import MongoClient
from pymongo.database import Database

from src.config import settings
from src.errors import ValidationError

_mongo_client: MongoClient | None = None


def get_mongo_client() -> MongoClient:
    """Return a singleton MongoDB client for the current process."""

    global _mongo_client
    if _mongo_client is None:
        _mongo_client = MongoClient(settings.MONGODB_URL, tz_aware=True)
    return _mongo_client


def get_database() -> Database:
    """FastAPI dependency returning the storefront database."""

    return get_mongo_client()[settings.MONGODB_DATABASE]


DatabaseDependency = Annotated[Database, Depends(get_database)]


def to_object_id(value: str, label: str = "id") -> ObjectId:
    """Parse a client supplied identifier, rejecting malformed values."""

    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label}: {value!r}")
    return ObjectId(value)


def serialize_doc(doc: dict[str, Any] | None) -> dict[str, Any] | None:
    """Convert a stored document into JSON friendly data."""
    if doc is None:
        return None
    result: dict[str, Any] = {}
    for key, value in doc.items():
        if key == "_id":
            result["id"] = _serialize_value(value)
        else:
            result[key] = _serialize_value(value)
    return result


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value
