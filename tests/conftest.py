import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from workshop_launcher.errors import SchemaViolation
from workshop_launcher.pipeline.schema import decode_json
from workshop_launcher.prompts.loader import PromptLoader
from workshop_launcher.services.model_client import GenerationRequest


class FakeModelClient:
    """Stands in for ModelClient; replies are queued per call kind."""

    def __init__(self, texts: Optional[List[Any]] = None, structured: Optional[List[Any]] = None):
        self.texts = list(texts or [])
        self.structured = list(structured or [])
        self.calls: List[tuple] = []

    async def generate_text(self, request: GenerationRequest) -> str:
        self.calls.append(("text", request))
        reply = self.texts.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def generate_structured(self, request: GenerationRequest):
        self.calls.append(("structured", request))
        reply = self.structured.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        check = decode_json(reply, request.schema)
        if not check.ok:
            raise SchemaViolation(request.schema.__name__, "model response", check.errors)
        return check.value


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served, in order."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def calls(self) -> List[str]:
        return [f"{request.method} {request.url.path}" for request in self.requests]


def json_body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content)


@pytest.fixture
def prompts():
    return PromptLoader()


@pytest.fixture
def brief():
    return {"hosts": "A", "learningOutcomes": "B", "targetAudience": "C"}


@pytest.fixture
def listing_json():
    return json.dumps({"title": "Build agent networks", "description": "By the end, you can route work between agents."})
