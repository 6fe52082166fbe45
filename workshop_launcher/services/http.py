"""
Shared request helper for the provisioning clients.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..errors import SchemaViolation, TransportError

LOGGER = logging.getLogger(__name__)


async def send(client: httpx.AsyncClient, method: str, url: str, *, operation: str, **kwargs: Any) -> httpx.Response:
    """Issue one request; any network failure or non-2xx reply raises TransportError."""

    LOGGER.debug("%s: %s %s", operation, method, url)
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        LOGGER.error("%s failed: %s", operation, exc)
        raise TransportError(f"{operation} failed: {exc}") from exc
    if response.is_error:
        payload = upstream_payload(response)
        LOGGER.error("%s failed with HTTP %s: %s", operation, response.status_code, payload)
        raise TransportError(
            f"{operation} failed with HTTP {response.status_code}",
            status_code=response.status_code,
            payload=payload,
        )
    return response


def upstream_payload(response: httpx.Response) -> Any:
    """Response body as sent by the service: decoded JSON when possible, else text."""

    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def read_json(response: httpx.Response, *, operation: str) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise TransportError(f"{operation} returned a non-JSON body", status_code=response.status_code, payload=response.text) from exc


def require_field(data: Any, path: str, *, operation: str) -> Any:
    """Fetch a dotted `path` from a decoded body, failing closed when absent."""

    cursor = data
    for key in path.split("."):
        if not isinstance(cursor, dict) or cursor.get(key) in (None, ""):
            raise SchemaViolation(operation, "response", [f"{path}: field required"])
        cursor = cursor[key]
    return cursor
