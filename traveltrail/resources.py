"""
Resource services: the per-collection logic behind the HTTP handlers.

Reads are unauthenticated; handlers guard mutating calls with the admin
dependency before reaching these methods.
"""

from __future__ import annotations

import logging
from typing import Optional, Type

from pydantic import BaseModel

from traveltrail.db import (
    ACCOMMODATIONS,
    CMS_PAGES,
    TRIPS,
    DocumentStore,
    UpdateOutcome,
    flatten_distinct,
    parse_object_id,
    serialize_document,
)
from traveltrail.errors import NotFoundError
from traveltrail.schemas import (
    AccommodationCreate,
    AccommodationUpdate,
    CmsPageUpdate,
    TripCreate,
    TripUpdate,
    strip_immutable,
    to_document,
    validate_payload,
)

logger = logging.getLogger(__name__)

ACCOMMODATION_LIST_PROJECTION = {
    "_id": 1,
    "name": 1,
    "price": 1,
    "roomType": 1,
    "maxOccupancy": 1,
    "images": 1,
}


class CmsPages:
    """CMS pages addressed by a semantic key and provisioned lazily by upsert."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, key: str) -> dict:
        page = self.store.find_one(CMS_PAGES, {"key": key})
        if page is None:
            raise NotFoundError("Page content not found.")
        return serialize_document(page)

    def upsert(self, key: str, payload: dict) -> bool:
        """Set title and content for ``key``; returns True when the page was created."""
        update = validate_payload(CmsPageUpdate, strip_immutable(payload), "page")
        outcome = self.store.update_one(
            CMS_PAGES,
            {"key": key},
            {"title": update.title, "content": update.content},
            upsert=True,
        )
        created = outcome.upserted_id is not None
        logger.info(
            "CMS page %s %s (modified=%d)",
            key,
            "created" if created else "updated",
            outcome.modified_count,
        )
        return created


class DocumentResource:
    """Create/read/update/delete for documents addressed by ObjectId."""

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        label: str,
        create_schema: Type[BaseModel],
        update_schema: Type[BaseModel],
        list_projection: Optional[dict] = None,
    ):
        self.store = store
        self.collection = collection
        self.label = label
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.list_projection = list_projection

    @property
    def title(self) -> str:
        return self.label.capitalize()

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.title} not found")

    def _filter(self, document_id: str) -> dict:
        return {"_id": parse_object_id(document_id, self.label)}

    def _create_document(self, model: BaseModel) -> dict:
        return to_document(model)

    def list_all(self) -> list[dict]:
        documents = self.store.find(self.collection, {}, self.list_projection)
        return [serialize_document(document) for document in documents]

    def get(self, document_id: str) -> dict:
        document = self.store.find_one(self.collection, self._filter(document_id))
        if document is None:
            raise self._not_found()
        return serialize_document(document)

    def create(self, payload: dict) -> str:
        model = validate_payload(self.create_schema, strip_immutable(payload), self.label)
        inserted_id = self.store.insert_one(self.collection, self._create_document(model))
        logger.info("Inserted %s %s", self.label, inserted_id)
        return inserted_id

    def update(self, document_id: str, payload: dict) -> UpdateOutcome:
        query = self._filter(document_id)
        model = validate_payload(self.update_schema, strip_immutable(payload), self.label)
        outcome = self.store.update_one(
            self.collection, query, to_document(model, exclude_unset=True)
        )
        if outcome.matched_count == 0:
            raise self._not_found()
        logger.info(
            "Updated %s %s (modified=%d)", self.label, document_id, outcome.modified_count
        )
        return outcome

    def delete(self, document_id: str) -> None:
        deleted = self.store.delete_one(self.collection, self._filter(document_id))
        if deleted == 0:
            raise self._not_found()
        logger.info("Deleted %s %s", self.label, document_id)

    def filter_values(self, field: str) -> list:
        return flatten_distinct(self.store.distinct(self.collection, field))


class Trips(DocumentResource):
    def __init__(self, store: DocumentStore):
        super().__init__(store, TRIPS, "trip", TripCreate, TripUpdate)

    def _create_document(self, model: TripCreate) -> dict:
        return model.to_document()


class Accommodations(DocumentResource):
    def __init__(self, store: DocumentStore):
        super().__init__(
            store,
            ACCOMMODATIONS,
            "accommodation",
            AccommodationCreate,
            AccommodationUpdate,
            list_projection=ACCOMMODATION_LIST_PROJECTION,
        )
