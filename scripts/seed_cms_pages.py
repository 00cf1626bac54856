"""
Seed the cmsPages collection from a JSON file of ``{key: {title, content}}``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pymongo.errors import PyMongoError

from traveltrail.config import get_settings
from traveltrail.db import CMS_PAGES, DocumentStore
from traveltrail.dependencies import build_document_store
from traveltrail.errors import ApiError
from traveltrail.logging_config import configure_logging

logger = logging.getLogger(__name__)


def load_pages(path: Path) -> list[dict]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain an object keyed by page key")
    pages = []
    for key, value in data.items():
        if not isinstance(value, dict):
            raise ValueError(f"page {key!r} must be an object")
        pages.append({**value, "key": key})
    return pages


def seed(store: DocumentStore, pages: list[dict], *, keep: bool = False) -> int:
    """
    Replace the collection with ``pages``. With ``keep``, other pages stay and
    each seeded page is upserted by key.
    """
    if keep:
        for page in pages:
            fields = {name: value for name, value in page.items() if name != "key"}
            store.update_one(CMS_PAGES, {"key": page["key"]}, fields, upsert=True)
        logger.info("Upserted %d CMS pages", len(pages))
        return len(pages)

    removed = store.delete_many(CMS_PAGES, {})
    logger.info("Cleared %d existing CMS pages", removed)
    inserted = store.insert_many(CMS_PAGES, pages)
    logger.info("Database seeded with %d CMS pages", inserted)
    return inserted


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed CMS pages into MongoDB")
    parser.add_argument("pages_file", type=Path, help="JSON file of pages by key")
    parser.add_argument(
        "--keep",
        action="store_true",
        help="Upsert pages by key instead of clearing the collection first",
    )
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        pages = load_pages(args.pages_file)
        store = build_document_store(settings)
    except (OSError, ValueError) as exc:
        logger.error("Could not load %s: %s", args.pages_file, exc)
        return 1
    except (ApiError, PyMongoError) as exc:
        logger.error("Could not connect to the database: %s", exc)
        return 1

    try:
        seed(store, pages, keep=args.keep)
    except ApiError as exc:
        logger.error("Error seeding database: %s", exc)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
