"""
MongoDB access for the Food Delivery API.

Collections are named after the lowercase model name in schemas.py
(Restaurant -> "restaurant", MenuItem -> "menuitem", ...).
Use create_document/get_documents for inserts and listings.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, MongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError

from errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "food_delivery")

# MongoClient connects lazily, so importing this module never blocks on the server.
client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
db = client[DATABASE_NAME]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_id(value: str, label: str = "Resource") -> ObjectId:
    """ObjectId from a path parameter; malformed ids are treated as missing."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"{label} not found")


HIDDEN_FIELDS = {"passwordHash"}


def _to_json(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_json(v) for k, v in value.items()}
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Mongo document -> response dict: _id becomes id, ObjectIds become strings, internal fields dropped."""
    if not doc:
        return doc
    d = {k: v for k, v in doc.items() if k not in HIDDEN_FIELDS}
    _id = d.pop("_id", None)
    if _id is not None:
        d = {"id": str(_id), **d}
    return _to_json(d)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> dict:
    """Insert a document stamped with createdAt/updatedAt and return it with its _id."""
    if isinstance(data, BaseModel):
        doc = data.model_dump(by_alias=True)
    else:
        doc = dict(data)
    now = utcnow()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    try:
        result = db[collection_name].insert_one(doc)
    except DuplicateKeyError:
        raise
    except PyMongoError as exc:
        raise StoreError(f"insert into {collection_name} failed: {exc}") from exc
    doc["_id"] = result.inserted_id
    return doc


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, limit: Optional[int] = None, sort: Optional[list] = None) -> list:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    try:
        return list(cursor)
    except PyMongoError as exc:
        raise StoreError(f"query on {collection_name} failed: {exc}") from exc


def ensure_indexes() -> None:
    db["restaurant"].create_index([("location", GEOSPHERE)])
    db["user"].create_index([("email", ASCENDING)], unique=True)
    db["menuitem"].create_index([("restaurant", ASCENDING)])
    db["menuitem"].create_index([("averageRating", DESCENDING)])
    db["order"].create_index([("customer", ASCENDING), ("createdAt", DESCENDING)])
    db["order"].create_index([("restaurant", ASCENDING), ("createdAt", DESCENDING)])
    db["order"].create_index([("deliveryDriver", ASCENDING), ("createdAt", DESCENDING)])
    db["review"].create_index([("menuItem", ASCENDING)])
    logger.info("Indexes ensured on database %s", DATABASE_NAME)
