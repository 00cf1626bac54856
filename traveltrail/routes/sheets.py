from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from traveltrail.dependencies import get_relay
from traveltrail.errors import ValidationError
from traveltrail.relay import SheetsRelay

router = APIRouter(tags=["sheets"])


@router.post("/sheets-proxy")
def sheets_proxy(payload: Any = Body(...), relay: SheetsRelay = Depends(get_relay)):
    """Relay the payload to the spreadsheet webhook and mirror its answer."""
    if not isinstance(payload, dict):
        raise ValidationError(errors=["body: must be a JSON object"])
    result = relay.forward(payload)
    return JSONResponse(status_code=result.status_code, content=result.body)
