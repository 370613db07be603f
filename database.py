"""
Database Helper

A thin MongoDB store used by the services. The store wraps a pymongo Database
handle; `connect` builds one and callers pass it to the services.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import InvalidId, StoreUnavailable

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "foodapp"


def _to_dict(data: Union[BaseModel, dict]) -> dict:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    return dict(data)


class Store:
    def __init__(self, db: Database):
        self.db = db

    # CRUD helpers

    def create_document(self, collection_name: str, data: Union[BaseModel, dict]) -> str:
        payload = self._stamp(_to_dict(data))
        result = self.db[collection_name].insert_one(payload)
        return str(result.inserted_id)

    def create_documents(self, collection_name: str, items: Iterable[Union[BaseModel, dict]]) -> List[str]:
        payloads = [self._stamp(_to_dict(item)) for item in items]
        if not payloads:
            return []
        result = self.db[collection_name].insert_many(payloads)
        return [str(_id) for _id in result.inserted_ids]

    def get_documents(
        self,
        collection_name: str,
        filter_dict: Optional[dict] = None,
        limit: Optional[int] = None,
        sort: Optional[list] = None,
    ) -> List[dict]:
        cursor = self.db[collection_name].find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(int(limit))
        return [serialize_doc(doc) for doc in cursor]

    def get_document_by_id(self, collection_name: str, _id: str) -> Optional[dict]:
        doc = self.db[collection_name].find_one({"_id": to_object_id(_id)})
        return serialize_doc(doc) if doc else None

    def find_one(self, collection_name: str, filter_dict: Dict[str, Any]) -> Optional[dict]:
        doc = self.db[collection_name].find_one(filter_dict)
        return serialize_doc(doc) if doc else None

    def count_documents(self, collection_name: str, filter_dict: Optional[dict] = None) -> int:
        return self.db[collection_name].count_documents(filter_dict or {})

    # Maintenance

    def ensure_indexes(self) -> None:
        self.db["user"].create_index([("username", ASCENDING)], unique=True)
        self.db["food"].create_index([("createdAt", DESCENDING)])
        self.db["order"].create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])

    def ping(self) -> bool:
        try:
            self.db.command("ping")
            return True
        except PyMongoError:
            return False

    @staticmethod
    def _stamp(payload: dict) -> dict:
        payload.setdefault("createdAt", datetime.now(timezone.utc))
        return payload


def connect(uri: str, database_name: Optional[str] = None, timeout_ms: int = 5000) -> Store:
    """
    Open a client, check the server answers and return a Store for the
    requested database (or the one named in the URI).
    """
    client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        client.close()
        raise StoreUnavailable(str(exc)) from exc
    if database_name:
        db = client[database_name]
    else:
        db = client.get_default_database(default=DEFAULT_DATABASE_NAME)
    logger.info("MongoDB connected (database=%s)", db.name)
    return Store(db)


# Utility

def to_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidId("Invalid ID")
    return ObjectId(value)


def serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return None
    # ObjectIds, including nested references, become strings
    return serialize_value(dict(doc))
