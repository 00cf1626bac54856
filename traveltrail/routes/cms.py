from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from traveltrail.dependencies import get_cms_pages, require_admin
from traveltrail.resources import CmsPages
from traveltrail.schemas import CmsPageUpdatedResponse

router = APIRouter(prefix="/cms/pages", tags=["cms"])


@router.get("/{page_key}")
def get_page(page_key: str, pages: CmsPages = Depends(get_cms_pages)):
    return pages.get(page_key)


@router.put(
    "/{page_key}",
    response_model=CmsPageUpdatedResponse,
    dependencies=[Depends(require_admin)],
)
def update_page(
    page_key: str,
    payload: Any = Body(...),
    pages: CmsPages = Depends(get_cms_pages),
):
    """Upsert: pages that do not exist yet are created on first save."""
    created = pages.upsert(page_key, payload)
    return CmsPageUpdatedResponse(
        message="Page content updated successfully.", created=created
    )
