"""
Pipeline steps: one schema-bounded model call each.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import BaseModel

from ..errors import SchemaViolation
from ..prompts.loader import PromptLoader
from ..services.model_client import GenerationRequest, ModelClient
from .schema import validate
from .types import KeyPoints, WorkshopBrief, WorkshopListing

LOGGER = logging.getLogger(__name__)


class Step:
    """Validates input, makes exactly one model call, validates output.

    Subclasses declare `step_id`, the boundary schemas, the prompt name and,
    for structured replies, `response_schema`; they map the reply to the
    output mapping in `to_output`.
    """

    step_id: str = ""
    input_schema: Type[BaseModel] = BaseModel
    output_schema: Type[BaseModel] = BaseModel
    response_schema: Optional[Type[BaseModel]] = None
    prompt_name: str = ""

    def __init__(self, client: ModelClient, prompts: PromptLoader) -> None:
        self.client = client
        self.prompts = prompts

    async def execute(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        checked = validate(self.input_schema, data)
        if not checked.ok:
            raise SchemaViolation(self.step_id, "input", checked.errors)

        request = self.build_request(checked.value)
        LOGGER.info("step %s: calling model (structured=%s)", self.step_id, self.response_schema is not None)
        if self.response_schema is None:
            reply: Any = await self.client.generate_text(request)
        else:
            try:
                reply = await self.client.generate_structured(request)
            except SchemaViolation as exc:
                raise SchemaViolation(self.step_id, "model response", exc.errors) from exc

        result = validate(self.output_schema, self.to_output(checked.value, reply))
        if not result.ok:
            raise SchemaViolation(self.step_id, "output", result.errors)
        return result.dump()

    def build_request(self, value: BaseModel) -> GenerationRequest:
        return GenerationRequest(
            system_prompt=self.prompts.system(self.prompt_name),
            user_prompt=self.prompts.user(self.prompt_name, value.model_dump()),
            schema=self.response_schema,
        )

    def to_output(self, value: BaseModel, reply: Any) -> Any:
        raise NotImplementedError


class GenerateKeyPointsStep(Step):
    step_id = "generate-key-points"
    input_schema = WorkshopBrief
    output_schema = KeyPoints
    prompt_name = "key_points"

    def to_output(self, value: BaseModel, reply: Any) -> Any:
        return {"keyPoints": reply}


class RefineDescriptionStep(Step):
    step_id = "refine-description"
    input_schema = KeyPoints
    output_schema = WorkshopListing
    response_schema = WorkshopListing
    prompt_name = "description"

    def to_output(self, value: BaseModel, reply: Any) -> Any:
        return reply
