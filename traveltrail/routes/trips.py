from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from starlette.concurrency import run_in_threadpool

from traveltrail.dependencies import get_trips, require_admin
from traveltrail.errors import ValidationError
from traveltrail.resources import Trips
from traveltrail.schemas import (
    CreatedResponse,
    DeletedResponse,
    UpdatedResponse,
    normalize_trip_form,
)

router = APIRouter(prefix="/trips", tags=["trips"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_trip_payload(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data = {}
        for key in form.keys():
            values = [value for value in form.getlist(key) if isinstance(value, str)]
            if values:
                data[key] = values if len(values) > 1 else values[0]
        return normalize_trip_form(data)
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(
            "Invalid trip data", errors=["body: must be valid JSON"]
        ) from exc


@router.get("")
def list_trips(trips: Trips = Depends(get_trips)):
    return trips.list_all()


@router.get("/filters/destinations")
def trip_destinations(trips: Trips = Depends(get_trips)):
    return trips.filter_values("destination")


@router.get("/filters/themes")
def trip_themes(trips: Trips = Depends(get_trips)):
    return trips.filter_values("themes")


@router.get("/filters/inclusions")
def trip_inclusions(trips: Trips = Depends(get_trips)):
    return trips.filter_values("inclusions")


@router.get("/filters/exclusions")
def trip_exclusions(trips: Trips = Depends(get_trips)):
    return trips.filter_values("exclusions")


@router.post(
    "",
    status_code=201,
    response_model=CreatedResponse,
    dependencies=[Depends(require_admin)],
)
async def create_trip(request: Request, trips: Trips = Depends(get_trips)):
    """Accepts a JSON body or a form-encoded submission."""
    payload = await _read_trip_payload(request)
    trip_id = await run_in_threadpool(trips.create, payload)
    return CreatedResponse(message="Trip package added successfully!", id=trip_id)


@router.get("/{trip_id}")
def get_trip(trip_id: str, trips: Trips = Depends(get_trips)):
    return trips.get(trip_id)


@router.put(
    "/{trip_id}",
    response_model=UpdatedResponse,
    dependencies=[Depends(require_admin)],
)
def update_trip(
    trip_id: str,
    payload: Any = Body(...),
    trips: Trips = Depends(get_trips),
):
    outcome = trips.update(trip_id, payload)
    return UpdatedResponse(
        message="Trip updated successfully", modifiedCount=outcome.modified_count
    )


@router.delete(
    "/{trip_id}",
    response_model=DeletedResponse,
    dependencies=[Depends(require_admin)],
)
def delete_trip(trip_id: str, trips: Trips = Depends(get_trips)):
    trips.delete(trip_id)
    return DeletedResponse(message="Trip deleted successfully")
