"""
Document store abstraction for MongoDB and an in-memory test implementation.

Both implementations speak in plain dicts keyed by field name, address
documents with filter dicts, and use ``bson.ObjectId`` for ``_id``.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Protocol

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from traveltrail.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

CMS_PAGES = "cmsPages"
TRIPS = "trips"
ACCOMMODATIONS = "accommodations"


@dataclass
class UpdateOutcome:
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None


class DocumentStore(Protocol):
    """Interface for the collection-oriented persistence layer."""

    def find_one(self, collection: str, filter: dict) -> Optional[dict]:
        ...

    def find(
        self, collection: str, filter: dict, projection: Optional[dict] = None
    ) -> list[dict]:
        ...

    def insert_one(self, collection: str, document: dict) -> str:
        ...

    def insert_many(self, collection: str, documents: list[dict]) -> int:
        ...

    def update_one(
        self, collection: str, filter: dict, patch: dict, *, upsert: bool = False
    ) -> UpdateOutcome:
        ...

    def delete_one(self, collection: str, filter: dict) -> int:
        ...

    def delete_many(self, collection: str, filter: dict) -> int:
        ...

    def distinct(self, collection: str, field: str) -> list:
        ...

    def ping(self) -> None:
        ...

    def close(self) -> None:
        ...


def parse_object_id(value: str, label: str = "document") -> ObjectId:
    """Convert a path identifier into an ObjectId or fail with a 400."""
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(f"Invalid {label} id", code="INVALID_ID")
    return ObjectId(value)


def serialize_document(document: dict) -> dict:
    """Render store-native identifiers as strings for JSON responses."""
    data = dict(document)
    if isinstance(data.get("_id"), ObjectId):
        data["_id"] = str(data["_id"])
    return data


def _matches(document: dict, filter: dict) -> bool:
    return all(
        key in document and document[key] == value for key, value in filter.items()
    )


def _project(document: dict, projection: Optional[dict]) -> dict:
    if not projection:
        return copy.deepcopy(document)
    included = {key for key, flag in projection.items() if flag}
    if projection.get("_id", 1):
        included.add("_id")
    return {
        key: copy.deepcopy(value)
        for key, value in document.items()
        if key in included
    }


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, list[dict]] = {}

    def _collection(self, name: str) -> list[dict]:
        return self.collections.setdefault(name, [])

    def find_one(self, collection: str, filter: dict) -> Optional[dict]:
        for document in self._collection(collection):
            if _matches(document, filter):
                return copy.deepcopy(document)
        return None

    def find(
        self, collection: str, filter: dict, projection: Optional[dict] = None
    ) -> list[dict]:
        return [
            _project(document, projection)
            for document in self._collection(collection)
            if _matches(document, filter)
        ]

    def insert_one(self, collection: str, document: dict) -> str:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self._collection(collection).append(stored)
        return str(stored["_id"])

    def insert_many(self, collection: str, documents: list[dict]) -> int:
        for document in documents:
            self.insert_one(collection, document)
        return len(documents)

    def update_one(
        self, collection: str, filter: dict, patch: dict, *, upsert: bool = False
    ) -> UpdateOutcome:
        for document in self._collection(collection):
            if not _matches(document, filter):
                continue
            changed = any(
                key not in document or document[key] != value
                for key, value in patch.items()
            )
            document.update(copy.deepcopy(patch))
            return UpdateOutcome(matched_count=1, modified_count=int(changed))
        if not upsert:
            return UpdateOutcome(matched_count=0, modified_count=0)
        upserted_id = self.insert_one(collection, {**filter, **patch})
        return UpdateOutcome(matched_count=0, modified_count=0, upserted_id=upserted_id)

    def delete_one(self, collection: str, filter: dict) -> int:
        documents = self._collection(collection)
        for index, document in enumerate(documents):
            if _matches(document, filter):
                del documents[index]
                return 1
        return 0

    def delete_many(self, collection: str, filter: dict) -> int:
        documents = self._collection(collection)
        kept = [document for document in documents if not _matches(document, filter)]
        deleted = len(documents) - len(kept)
        self.collections[collection] = kept
        return deleted

    def distinct(self, collection: str, field: str) -> list:
        # Mirrors MongoDB: array values contribute their elements, one level deep.
        values: list = []
        seen: list = []
        for document in self._collection(collection):
            if field not in document:
                continue
            value = document[field]
            candidates = value if isinstance(value, list) else [value]
            for candidate in candidates:
                marker = (type(candidate), candidate)
                if marker not in seen:
                    seen.append(marker)
                    values.append(copy.deepcopy(candidate))
        return values

    def ping(self) -> None:
        return None

    def close(self) -> None:
        return None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()


class MongoDocumentStore:
    """
    pymongo-backed implementation. Driver failures surface as InternalError so
    handlers never leak driver exception text.
    """

    def __init__(
        self,
        uri: Optional[str],
        database_name: str,
        *,
        timeout_ms: int = 5000,
        client: Optional[MongoClient] = None,
    ):
        if client is None:
            if not uri:
                raise ValueError("MONGODB_URI is required for MongoDocumentStore")
            client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        self.client = client
        self.db = client[database_name]

    @contextmanager
    def _guard(self, operation: str, collection: str) -> Iterator[None]:
        try:
            yield
        except PyMongoError as exc:
            logger.exception("MongoDB %s on %s failed: %s", operation, collection, exc)
            raise InternalError("Database operation failed") from exc

    def find_one(self, collection: str, filter: dict) -> Optional[dict]:
        with self._guard("find_one", collection):
            return self.db[collection].find_one(filter)

    def find(
        self, collection: str, filter: dict, projection: Optional[dict] = None
    ) -> list[dict]:
        with self._guard("find", collection):
            return list(self.db[collection].find(filter, projection))

    def insert_one(self, collection: str, document: dict) -> str:
        with self._guard("insert_one", collection):
            result = self.db[collection].insert_one(dict(document))
        return str(result.inserted_id)

    def insert_many(self, collection: str, documents: list[dict]) -> int:
        if not documents:
            return 0
        with self._guard("insert_many", collection):
            result = self.db[collection].insert_many([dict(d) for d in documents])
        return len(result.inserted_ids)

    def update_one(
        self, collection: str, filter: dict, patch: dict, *, upsert: bool = False
    ) -> UpdateOutcome:
        with self._guard("update_one", collection):
            result = self.db[collection].update_one(
                filter, {"$set": patch}, upsert=upsert
            )
        upserted_id = result.upserted_id
        return UpdateOutcome(
            matched_count=result.matched_count,
            modified_count=result.modified_count,
            upserted_id=str(upserted_id) if upserted_id is not None else None,
        )

    def delete_one(self, collection: str, filter: dict) -> int:
        with self._guard("delete_one", collection):
            return self.db[collection].delete_one(filter).deleted_count

    def delete_many(self, collection: str, filter: dict) -> int:
        with self._guard("delete_many", collection):
            return self.db[collection].delete_many(filter).deleted_count

    def distinct(self, collection: str, field: str) -> list:
        with self._guard("distinct", collection):
            return list(self.db[collection].distinct(field))

    def ping(self) -> None:
        self.client.admin.command("ping")

    def close(self) -> None:
        self.client.close()


def flatten_distinct(values: list) -> list[Any]:
    """
    Flatten nested arrays returned by ``distinct`` into unique scalar values,
    keeping first-seen order and dropping nulls.
    """
    flat: list[Any] = []
    # Keyed on type too: 1 and True compare equal but are distinct values.
    seen: list[tuple] = []

    def _collect(value: Any) -> None:
        if isinstance(value, list):
            for item in value:
                _collect(item)
        elif value is not None and (type(value), value) not in seen:
            seen.append((type(value), value))
            flat.append(value)

    _collect(values)
    return flat
