"""
Client wrapper using the official OpenAI SDK (Async) for chat completions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Type

from openai import AsyncOpenAI
from pydantic import BaseModel

from ..errors import SchemaViolation
from ..pipeline.schema import decode_json

LOGGER = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    schema: Optional[Type[BaseModel]] = None


class ModelClient:
    def __init__(
        self,
        *,
        model: str,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.base_url = base_url
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)
        self.last_raw: Optional[str] = None

    async def __aenter__(self) -> "ModelClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.close()

    async def generate_text(self, request: GenerationRequest) -> str:
        text = await self._chat(_build_messages(request))
        self.last_raw = text
        LOGGER.debug("text response: %s", text)
        return text

    async def generate_structured(self, request: GenerationRequest) -> BaseModel:
        """Single structured call; the reply is decoded against `request.schema`."""

        schema = request.schema
        if schema is None:
            raise ValueError("generate_structured requires a schema")
        response_format = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.__name__,
                "schema": schema.model_json_schema(by_alias=True),
            },
        }
        text = await self._chat(_build_messages(request), response_format=response_format)
        self.last_raw = text
        LOGGER.debug("structured response: %s", text)
        check = decode_json(text, schema)
        if not check.ok:
            LOGGER.warning("structured response rejected by %s: %s", schema.__name__, check.errors)
            raise SchemaViolation(schema.__name__, "model response", check.errors)
        return check.value

    async def _chat(self, messages: Sequence[Dict[str, Any]], **extra: Any) -> str:
        summary = _summarize_messages(messages)
        LOGGER.info(
            "chat request: model=%s base_url=%s roles=%s text_chars=%s structured=%s",
            self.model,
            self.base_url,
            summary.get("roles"),
            summary.get("text_chars"),
            "response_format" in extra,
        )
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=list(messages),
                **extra,
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("chat request failed: %s", exc)
            raise
        choices = response.choices
        if not choices:
            raise RuntimeError("Model returned no choices")
        content = choices[0].message.content
        if isinstance(content, list):
            text = "".join(getattr(part, "text", "") or "" for part in content)
        else:
            text = content or ""
        return text.strip()


def _build_messages(request: GenerationRequest) -> List[Dict[str, Any]]:
    messages: List[Dict[str, Any]] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.append({"role": "user", "content": request.user_prompt})
    return messages


def _summarize_messages(messages: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    roles: List[str] = []
    text_chars = 0
    for message in messages:
        role = message.get("role")
        if role:
            roles.append(str(role))
        content = message.get("content")
        if isinstance(content, str):
            text_chars += len(content)
    return {"roles": roles, "text_chars": text_chars}
