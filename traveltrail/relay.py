"""
Relay to the Google Apps Script webhook that appends rows to a spreadsheet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from traveltrail.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class RelayResponse:
    status_code: int
    body: Any


class SheetsRelay:
    """Forwards a JSON payload plus the shared secret to a single webhook URL."""

    def __init__(
        self,
        url: Optional[str],
        secret: Optional[str],
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def forward(self, payload: dict) -> RelayResponse:
        if not self.url:
            logger.error("GOOGLE_SCRIPT_URL not configured")
            raise ConfigurationError(
                "Sheets integration not configured", code="SHEETS_NOT_CONFIGURED"
            )

        body = dict(payload)
        if self.secret:
            body["secret"] = self.secret
        else:
            # Only the server-held secret may reach the webhook.
            body.pop("secret", None)
            logger.warning("GAS_SECRET not configured; relaying without secret")

        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
            data = response.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Sheets relay failed: %s", type(exc).__name__)
            raise UpstreamError() from exc

        logger.info("Sheets relay answered %d", response.status_code)
        return RelayResponse(status_code=response.status_code, body=data)

    def close(self) -> None:
        self.session.close()
