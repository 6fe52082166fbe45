"""
Requests and results exchanged with the provisioning services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

WEBINAR = "webinar"
EVENT = "event"


@dataclass
class ProvisionedResource:
    kind: str
    id: str
    url: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class UploadTarget:
    upload_url: str
    file_url: str


@dataclass
class EventRequest:
    title: str
    description: str
    start_at: datetime
    duration: int
    meeting_url: Optional[str] = None
    cover_image: Optional[bytes] = None


@dataclass
class WebinarRequest:
    topic: str
    start_time: datetime
    duration: int
    agenda: Optional[str] = None


@dataclass
class ProvisioningPlan:
    title: str
    description: str
    start_at: datetime
    duration: int
    meeting_url: Optional[str] = None
    cover_image: Optional[bytes] = None


@dataclass
class ProvisioningResult:
    webinar: Optional[ProvisionedResource] = None
    event: Optional[ProvisionedResource] = None

    @property
    def resources(self) -> List[ProvisionedResource]:
        return [item for item in (self.webinar, self.event) if item is not None]
