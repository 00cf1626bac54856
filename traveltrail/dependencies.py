"""
Dependency wiring for the FastAPI app.

Everything a handler needs lives on one ``AppContext`` built at startup and
stored on ``app.state``; the providers below hand out its parts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request

from traveltrail.auth import AdminCredentials, AdminPrincipal, TokenCodec, authenticate
from traveltrail.config import Settings
from traveltrail.db import DocumentStore, InMemoryDocumentStore, MongoDocumentStore
from traveltrail.errors import ConfigurationError
from traveltrail.relay import SheetsRelay
from traveltrail.resources import Accommodations, CmsPages, Trips

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    store: DocumentStore
    tokens: TokenCodec
    credentials: AdminCredentials
    relay: SheetsRelay
    cms_pages: CmsPages
    trips: Trips
    accommodations: Accommodations

    def close(self) -> None:
        self.relay.close()
        self.store.close()


def build_document_store(settings: Settings) -> DocumentStore:
    """
    Connect to MongoDB and ping it once. A failed connection is fatal: the
    caller is expected to stop the process.
    """
    if settings.use_in_memory_backends:
        logger.warning("Using in-memory document store; data is not persisted")
        return InMemoryDocumentStore()
    if not settings.mongodb_uri:
        raise ConfigurationError("MONGODB_URI is not configured")
    store = MongoDocumentStore(
        settings.mongodb_uri,
        settings.database_name,
        timeout_ms=settings.mongo_timeout_ms,
    )
    store.ping()
    logger.info("Connected to MongoDB database %s", settings.database_name)
    return store


def build_context(
    settings: Settings, store: Optional[DocumentStore] = None
) -> AppContext:
    # The signing secret is validated before any connection is attempted.
    tokens = TokenCodec(settings.admin_secret)
    if store is None:
        store = build_document_store(settings)
    return AppContext(
        settings=settings,
        store=store,
        tokens=tokens,
        credentials=AdminCredentials(
            settings.admin_username, settings.admin_password_hash
        ),
        relay=SheetsRelay(
            settings.google_script_url,
            settings.gas_secret,
            timeout=settings.relay_timeout_seconds,
        ),
        cms_pages=CmsPages(store),
        trips=Trips(store),
        accommodations=Accommodations(store),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_cms_pages(context: AppContext = Depends(get_context)) -> CmsPages:
    return context.cms_pages


def get_trips(context: AppContext = Depends(get_context)) -> Trips:
    return context.trips


def get_accommodations(context: AppContext = Depends(get_context)) -> Accommodations:
    return context.accommodations


def get_relay(context: AppContext = Depends(get_context)) -> SheetsRelay:
    return context.relay


def require_admin(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    context: AppContext = Depends(get_context),
) -> AdminPrincipal:
    """Verify the admin token and attach the principal to the request."""
    principal = authenticate(authorization, context.tokens)
    request.state.admin = principal
    return principal
