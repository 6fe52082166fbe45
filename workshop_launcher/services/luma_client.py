"""
Event-listing service client (Luma public API).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..provisioning.schedule import end_time, format_instant
from ..provisioning.types import EVENT, EventRequest, ProvisionedResource, UploadTarget
from ..utils.config_loader import DEFAULT_TIMEZONE, LumaConfig
from .http import read_json, require_field, send

LOGGER = logging.getLogger(__name__)
COVER_PURPOSE = "event-cover"


class LumaClient:
    """Creates public events; authenticates every call with a static API key."""

    def __init__(
        self,
        config: LumaConfig,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timezone = timezone
        self._headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "x-luma-api-key": config.api_key,
        }
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.last_event_id: Optional[str] = None

    async def __aenter__(self) -> "LumaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def publish(self, request: EventRequest) -> ProvisionedResource:
        """Upload the cover (if any), create the event, then resolve its URL."""

        self.last_event_id = None
        cover_url = None
        if request.cover_image:
            target = await self.create_upload_url()
            await self.upload_cover(target.upload_url, request.cover_image)
            cover_url = target.file_url
        api_id = await self.create_event(request, cover_url=cover_url)
        self.last_event_id = api_id
        url = await self.get_event_url(api_id)
        LOGGER.info("event published: api_id=%s url=%s", api_id, url)
        return ProvisionedResource(kind=EVENT, id=api_id, url=url, details={"cover_url": cover_url})

    async def create_upload_url(self, purpose: str = COVER_PURPOSE) -> UploadTarget:
        operation = "create image upload url"
        response = await send(
            self._client,
            "POST",
            self._url("/images/create-upload-url"),
            operation=operation,
            json={"purpose": purpose},
            headers=self._headers,
        )
        data = read_json(response, operation=operation)
        return UploadTarget(
            upload_url=require_field(data, "upload_url", operation=operation),
            file_url=require_field(data, "file_url", operation=operation),
        )

    async def upload_cover(self, upload_url: str, data: bytes, content_type: str = "image/png") -> None:
        # signed URL: no API key, only the content type
        await send(
            self._client,
            "PUT",
            upload_url,
            operation="upload cover image",
            content=data,
            headers={"Content-Type": content_type},
        )
        LOGGER.info("cover image uploaded: bytes=%s", len(data))

    async def create_event(self, request: EventRequest, *, cover_url: Optional[str] = None) -> str:
        operation = "create event"
        response = await send(
            self._client,
            "POST",
            self._url("/event/create"),
            operation=operation,
            json=self.event_body(request, cover_url=cover_url),
            headers=self._headers,
        )
        return str(require_field(read_json(response, operation=operation), "api_id", operation=operation))

    async def get_event_url(self, api_id: str) -> str:
        operation = "get event"
        response = await send(
            self._client,
            "GET",
            self._url("/event/get"),
            operation=operation,
            params={"id": api_id},
            headers=self._headers,
        )
        return require_field(read_json(response, operation=operation), "event.url", operation=operation)

    def event_body(self, request: EventRequest, *, cover_url: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "name": request.title,
            "description_md": request.description,
            "start_at": format_instant(request.start_at),
            "end_at": format_instant(end_time(request.start_at, request.duration)),
            "timezone": self.timezone,
            "visibility": self.config.visibility,
        }
        if cover_url:
            body["cover_url"] = cover_url
        if request.meeting_url:
            body["meeting_url"] = request.meeting_url
        return body

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"
