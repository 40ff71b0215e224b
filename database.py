"""
MongoDB access for the shop backend.

The connection is configured from the environment (or a .env file):

- DATABASE_URL:  MongoDB connection string
- DATABASE_NAME: database to use

When either is missing the module still imports; ``db`` stays ``None`` and
``get_db`` raises ``DatabaseUnavailable``.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from errors import DatabaseUnavailable, InvalidIdError

load_dotenv()

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

database_url = os.getenv("DATABASE_URL")
database_name = os.getenv("DATABASE_NAME")

if database_url and database_name:
    _client = MongoClient(database_url)
    db = _client[database_name]
    logger.info(f"Using MongoDB database {database_name}")
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set; database disabled")


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise DatabaseUnavailable(
            "Database not available. Check DATABASE_URL and DATABASE_NAME environment variables."
        )
    return db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise InvalidIdError(f"Invalid id format: {id_str!r}")


def to_datetime(value: Any) -> datetime:
    """Decode a stored timestamp into an aware UTC datetime.

    MongoDB hands back naive datetimes that are implicitly UTC. A missing value
    decodes to the time of read.
    """
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        return to_datetime(datetime.fromisoformat(value))
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def decode_document(doc: Dict[str, Any], timestamp_fields=("created_at", "updated_at")) -> Dict[str, Any]:
    """Copy a raw document, expose ``_id`` as ``id`` and decode its timestamps."""
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    for field in timestamp_fields:
        data[field] = to_datetime(data.get(field))
    return data


def create_document(database: Database, collection_name: str, data: Union[BaseModel, dict], org_id: Optional[str] = None) -> str:
    """Insert a document stamped with created_at/updated_at, return its id."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()
    if org_id is not None:
        data_dict["org_id"] = org_id
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, sort: Optional[list] = None) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
