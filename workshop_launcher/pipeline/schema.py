"""
Boundary validation helpers. Checks return a result and never raise.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*)```", re.DOTALL)


@dataclass
class SchemaCheck:
    ok: bool
    value: Optional[BaseModel] = None
    errors: List[str] = field(default_factory=list)

    def dump(self) -> Dict[str, Any]:
        """Validated value as a boundary mapping (wire field names)."""
        if self.value is None:
            raise ValueError("schema check failed; nothing to dump")
        return self.value.model_dump(by_alias=True)


def validate(schema: Type[BaseModel], data: Any) -> SchemaCheck:
    if isinstance(data, schema):
        data = data.model_dump(by_alias=True)
    if not isinstance(data, Mapping):
        return SchemaCheck(ok=False, errors=[f"expected an object, got {type(data).__name__}"])
    try:
        value = schema.model_validate(dict(data))
    except ValidationError as exc:
        return SchemaCheck(ok=False, errors=_format_errors(exc))
    return SchemaCheck(ok=True, value=value)


def decode_json(text: Optional[str], schema: Type[BaseModel]) -> SchemaCheck:
    """Parse untrusted model output against `schema`."""

    cleaned = extract_json(text)
    if not cleaned:
        return SchemaCheck(ok=False, errors=["empty response"])
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return SchemaCheck(ok=False, errors=[f"invalid JSON: {exc.msg}"])
    return validate(schema, data)


def extract_json(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    stripped = text.strip()
    fence_match = _FENCE_PATTERN.match(stripped)
    if fence_match:
        return fence_match.group(1).strip()
    return stripped


def schema_satisfies(producer: Type[BaseModel], consumer: Type[BaseModel]) -> List[str]:
    """List the consumer's required fields that the producer cannot supply."""

    provided = {_wire_name(name, info): info for name, info in producer.model_fields.items()}
    problems: List[str] = []
    for name, info in consumer.model_fields.items():
        if not info.is_required():
            continue
        wire = _wire_name(name, info)
        source = provided.get(wire)
        if source is None:
            problems.append(f"missing field '{wire}'")
        elif source.annotation != info.annotation:
            problems.append(f"field '{wire}' has type {source.annotation!r}, expected {info.annotation!r}")
    return problems


def _wire_name(name: str, info: Any) -> str:
    return info.alias or name


def _format_errors(exc: ValidationError) -> List[str]:
    messages: List[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        messages.append(f"{location}: {error.get('msg')}")
    return messages
