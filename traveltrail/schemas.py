"""
Pydantic schemas for the TravelTrail CMS API.

Document schemas are strict: a string where a number is expected is a
violation rather than something to coerce. Form-encoded trip submissions are
normalized by ``normalize_trip_form`` before they reach the same schema.
"""

from __future__ import annotations

import json
import math
from typing import Annotated, Any, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainValidator,
    StrictBool,
    StrictStr,
    StringConstraints,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from traveltrail.errors import ValidationError


def _check_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


Number = Annotated[Union[int, float], PlainValidator(_check_number)]
NonBlankStr = Annotated[
    str, StringConstraints(strict=True, strip_whitespace=True, min_length=1)
]

ModelT = TypeVar("ModelT", bound=BaseModel)

IMMUTABLE_FIELDS = ("_id", "id")


def _coerce_availability(value: Any) -> Any:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        raise ValueError("availability must be true or false")
    return value


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class CmsPageUpdate(BaseModel):
    model_config = ConfigDict(strict=True)

    title: NonBlankStr
    content: NonBlankStr


class TripCreate(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    name: NonBlankStr
    desc: NonBlankStr
    price: Number
    daysCount: Number
    nightsCount: Number
    category: Optional[StrictStr] = None
    theme: Optional[StrictStr] = None
    themes: list[StrictStr]
    inclusions: list[StrictStr]
    exclusions: list[StrictStr]
    images: list[StrictStr] = Field(default_factory=list)
    itineraries: list[Any]
    availability: Union[StrictBool, StrictStr] = False
    tripExpert: Optional[StrictStr] = None
    destination: Optional[StrictStr] = None

    @field_validator("availability")
    @classmethod
    def coerce_availability(cls, value: Any) -> Any:
        return _coerce_availability(value)

    def to_document(self) -> dict:
        data = self.model_dump()
        for key in ("price", "daysCount", "nightsCount"):
            data[key] = int(data[key])
        return data


class TripUpdate(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow")

    name: NonBlankStr
    price: Number
    desc: Optional[StrictStr] = None
    daysCount: Optional[Number] = None
    nightsCount: Optional[Number] = None
    themes: Optional[list[StrictStr]] = None
    inclusions: Optional[list[StrictStr]] = None
    exclusions: Optional[list[StrictStr]] = None
    images: Optional[list[StrictStr]] = None
    itineraries: Optional[list[Any]] = None
    availability: Optional[Union[StrictBool, StrictStr]] = None

    @field_validator("availability")
    @classmethod
    def coerce_availability(cls, value: Any) -> Any:
        return _coerce_availability(value)


class AccommodationCreate(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow")

    name: NonBlankStr
    price: Number
    roomType: NonBlankStr
    bedType: NonBlankStr
    maxOccupancy: Number
    size: NonBlankStr
    overview: NonBlankStr
    images: list[StrictStr]
    themes: list[StrictStr]
    amenities: list[StrictStr]
    destination: Optional[StrictStr] = None


class AccommodationUpdate(BaseModel):
    model_config = ConfigDict(strict=True, extra="allow")

    name: NonBlankStr
    price: Number
    roomType: Optional[StrictStr] = None
    bedType: Optional[StrictStr] = None
    maxOccupancy: Optional[Number] = None
    size: Optional[StrictStr] = None
    overview: Optional[StrictStr] = None
    images: Optional[list[StrictStr]] = None
    themes: Optional[list[StrictStr]] = None
    amenities: Optional[list[StrictStr]] = None
    destination: Optional[StrictStr] = None


def format_errors(exc: PydanticValidationError) -> list[str]:
    """One message per failing field, e.g. ``price: Value error, must be a number``."""
    messages: dict[str, str] = {}
    for error in exc.errors():
        location = [str(part) for part in error["loc"] if part != "body"]
        field = location[0] if location else "body"
        messages.setdefault(field, f"{field}: {error['msg']}")
    return list(messages.values())


def strip_immutable(payload: dict) -> dict:
    return {key: value for key, value in payload.items() if key not in IMMUTABLE_FIELDS}


def validate_payload(model: Type[ModelT], payload: Any, label: str) -> ModelT:
    if not isinstance(payload, dict):
        raise ValidationError(f"Invalid {label} data", errors=["body: must be a JSON object"])
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {label} data", errors=format_errors(exc)) from exc


def to_document(model: BaseModel, *, exclude_unset: bool = False) -> dict:
    """Dump a validated model, keeping any extra fields the schema allows."""
    data = model.model_dump(exclude_unset=exclude_unset)
    data.update(model.model_extra or {})
    return data


TRIP_NUMBER_FIELDS = ("price", "daysCount", "nightsCount")
TRIP_LIST_FIELDS = ("themes", "inclusions", "exclusions", "images")


def _parse_list_field(value: Any) -> Any:
    if isinstance(value, list) or not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("["):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return value
    return [item.strip() for item in text.split(",") if item.strip()]


def _parse_int_field(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


def normalize_trip_form(form: dict) -> dict:
    """
    Adapt a form-encoded trip submission to the JSON shape: numeric strings
    become integers, list fields are split, itineraries is decoded JSON.
    """
    data = dict(form)
    for key in TRIP_NUMBER_FIELDS:
        if key in data:
            data[key] = _parse_int_field(data[key])
    for key in TRIP_LIST_FIELDS:
        if key in data:
            data[key] = _parse_list_field(data[key])
    itineraries = data.get("itineraries")
    if isinstance(itineraries, str):
        try:
            data["itineraries"] = json.loads(itineraries)
        except json.JSONDecodeError:
            pass
    return data


class CreatedResponse(BaseModel):
    success: bool = True
    message: str
    id: str


class UpdatedResponse(BaseModel):
    success: bool = True
    message: str
    modifiedCount: int


class CmsPageUpdatedResponse(BaseModel):
    success: bool = True
    message: str
    created: bool


class DeletedResponse(BaseModel):
    success: bool = True
    message: str


class AdminUser(BaseModel):
    username: str


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    user: AdminUser


class CheckAuthResponse(BaseModel):
    authenticated: bool


class AccommodationListResponse(BaseModel):
    success: bool = True
    data: list[dict]
