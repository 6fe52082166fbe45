"""
Webinar service client (Zoom REST API, server-to-server OAuth).
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from ..provisioning.schedule import format_instant
from ..provisioning.types import WEBINAR, ProvisionedResource, WebinarRequest
from ..utils.config_loader import DEFAULT_TIMEZONE, ZoomConfig
from .http import read_json, require_field, send

LOGGER = logging.getLogger(__name__)

SCHEDULED_WEBINAR = 5
WEBINAR_SETTINGS: Dict[str, Any] = {
    "practice_session": True,
    "host_video": True,
    "panelists_video": True,
    "approval_type": 0,  # automatically approve
    "registration_type": 1,  # register once, attend any occurrence
    "audio": "both",
    "auto_recording": "none",
}


class ZoomClient:
    def __init__(
        self,
        config: ZoomConfig,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timezone = timezone
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ZoomClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_access_token(self) -> str:
        """Client-credentials exchange; the token is used for one call sequence only."""

        operation = "fetch access token"
        credentials = base64.b64encode(
            f"{self.config.client_id}:{self.config.client_secret}".encode("utf-8")
        ).decode("ascii")
        response = await send(
            self._client,
            "POST",
            self.config.oauth_url,
            operation=operation,
            data={"grant_type": "account_credentials", "account_id": self.config.account_id},
            headers={"Authorization": f"Basic {credentials}"},
        )
        data = read_json(response, operation=operation)
        token = require_field(data, "access_token", operation=operation)
        LOGGER.debug("access token issued: type=%s expires_in=%s", data.get("token_type"), data.get("expires_in"))
        return token

    async def create_webinar(self, request: WebinarRequest) -> ProvisionedResource:
        access_token = await self.fetch_access_token()

        operation = "create webinar"
        response = await send(
            self._client,
            "POST",
            f"{self.config.api_base_url}/users/me/webinars",
            operation=operation,
            json=self.webinar_body(request),
            headers={"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"},
        )
        data = read_json(response, operation=operation)
        webinar_id = str(require_field(data, "id", operation=operation))
        join_url = require_field(data, "join_url", operation=operation)
        LOGGER.info("webinar created: id=%s", webinar_id)
        return ProvisionedResource(
            kind=WEBINAR,
            id=webinar_id,
            url=join_url,
            details={"start_url": data.get("start_url"), "registration_url": data.get("registration_url")},
        )

    def webinar_body(self, request: WebinarRequest) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "topic": request.topic,
            "type": SCHEDULED_WEBINAR,
            "start_time": format_instant(request.start_time),
            "duration": request.duration,
            "timezone": self.timezone,
            "settings": dict(WEBINAR_SETTINGS),
        }
        if request.agenda:
            body["agenda"] = request.agenda
        return body
