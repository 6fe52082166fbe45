"""
Drives the webinar and event-listing clients for one generated listing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..errors import PreconditionError, ProvisioningFailed
from ..services.luma_client import LumaClient
from ..services.zoom_client import ZoomClient
from ..utils.config_loader import ProvisioningConfig
from .types import EVENT, EventRequest, ProvisionedResource, ProvisioningPlan, ProvisioningResult, WebinarRequest

LOGGER = logging.getLogger(__name__)


class ProvisioningDriver:
    """Creates the webinar (optional) and then the public event, in that order.

    There is no compensating cleanup: when a later stage fails, resources that
    were already created are reported on the raised `ProvisioningFailed`.
    """

    def __init__(
        self,
        *,
        webinar_client: Optional[ZoomClient] = None,
        event_client: Optional[LumaClient] = None,
    ) -> None:
        self.webinar_client = webinar_client
        self.event_client = event_client

    async def provision(self, plan: ProvisioningPlan) -> ProvisioningResult:
        result = ProvisioningResult()
        meeting_url = plan.meeting_url

        if self.webinar_client is not None:
            try:
                result.webinar = await self.webinar_client.create_webinar(
                    WebinarRequest(
                        topic=plan.title,
                        start_time=plan.start_at,
                        duration=plan.duration,
                        agenda=plan.description,
                    )
                )
            except Exception as exc:
                raise ProvisioningFailed("webinar", exc, result.resources) from exc
            meeting_url = meeting_url or result.webinar.url

        if self.event_client is not None:
            try:
                result.event = await self.event_client.publish(
                    EventRequest(
                        title=plan.title,
                        description=plan.description,
                        start_at=plan.start_at,
                        duration=plan.duration,
                        meeting_url=meeting_url,
                        cover_image=plan.cover_image,
                    )
                )
            except Exception as exc:
                created = result.resources
                if self.event_client.last_event_id:
                    # created upstream but its URL was never resolved
                    created.append(ProvisionedResource(kind=EVENT, id=self.event_client.last_event_id, url=""))
                for orphan in created:
                    LOGGER.warning("left in place after failure: %s %s (%s)", orphan.kind, orphan.id, orphan.url or "unresolved")
                raise ProvisioningFailed("event", exc, created) from exc

        return result


def build_event_client(config: ProvisioningConfig) -> LumaClient:
    return LumaClient(config.require_luma(), timezone=config.timezone, timeout=config.http_timeout)


def build_webinar_client(config: ProvisioningConfig) -> ZoomClient:
    return ZoomClient(config.require_zoom(), timezone=config.timezone, timeout=config.http_timeout)


def load_cover_image(path: str | Path | None) -> Optional[bytes]:
    if not path:
        return None
    cover_path = Path(path).expanduser()
    if not cover_path.is_file():
        raise PreconditionError(f"Cover image not found: {cover_path}")
    return cover_path.read_bytes()
