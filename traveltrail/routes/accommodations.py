from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from traveltrail.dependencies import get_accommodations, require_admin
from traveltrail.resources import Accommodations
from traveltrail.schemas import (
    AccommodationListResponse,
    CreatedResponse,
    DeletedResponse,
    UpdatedResponse,
)

router = APIRouter(prefix="/accommodations", tags=["accommodations"])


@router.get("", response_model=AccommodationListResponse)
def list_accommodations(
    accommodations: Accommodations = Depends(get_accommodations),
):
    # Projected to the card fields to keep the listing payload small.
    return AccommodationListResponse(data=accommodations.list_all())


@router.get("/filters/destinations")
def accommodation_destinations(
    accommodations: Accommodations = Depends(get_accommodations),
):
    return accommodations.filter_values("destination")


@router.get("/filters/themes")
def accommodation_themes(
    accommodations: Accommodations = Depends(get_accommodations),
):
    return accommodations.filter_values("themes")


@router.get("/filters/amenities")
def accommodation_amenities(
    accommodations: Accommodations = Depends(get_accommodations),
):
    return accommodations.filter_values("amenities")


@router.post(
    "",
    status_code=201,
    response_model=CreatedResponse,
    dependencies=[Depends(require_admin)],
)
def create_accommodation(
    payload: Any = Body(...),
    accommodations: Accommodations = Depends(get_accommodations),
):
    accommodation_id = accommodations.create(payload)
    return CreatedResponse(
        message="Accommodation added successfully", id=accommodation_id
    )


@router.get("/{accommodation_id}")
def get_accommodation(
    accommodation_id: str,
    accommodations: Accommodations = Depends(get_accommodations),
):
    return accommodations.get(accommodation_id)


@router.put(
    "/{accommodation_id}",
    response_model=UpdatedResponse,
    dependencies=[Depends(require_admin)],
)
def update_accommodation(
    accommodation_id: str,
    payload: Any = Body(...),
    accommodations: Accommodations = Depends(get_accommodations),
):
    outcome = accommodations.update(accommodation_id, payload)
    return UpdatedResponse(
        message="Accommodation updated successfully",
        modifiedCount=outcome.modified_count,
    )


@router.delete(
    "/{accommodation_id}",
    response_model=DeletedResponse,
    dependencies=[Depends(require_admin)],
)
def delete_accommodation(
    accommodation_id: str,
    accommodations: Accommodations = Depends(get_accommodations),
):
    accommodations.delete(accommodation_id)
    return DeletedResponse(message="Accommodation deleted successfully")
