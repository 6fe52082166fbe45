"""
Data types used across the pipeline steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Awaitable, Callable, Dict, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

RUN_SUCCESS = "success"
RUN_FAILED = "failed"


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty")
    return value


NonBlank = Annotated[str, AfterValidator(_not_blank)]


class BoundaryModel(BaseModel):
    """Step boundary payload. Attributes are snake_case, wire names camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WorkshopBrief(BoundaryModel):
    hosts: str
    learning_outcomes: str = Field(alias="learningOutcomes")
    target_audience: str = Field(alias="targetAudience")


class KeyPoints(BoundaryModel):
    key_points: NonBlank = Field(alias="keyPoints")


class WorkshopListing(BoundaryModel):
    title: NonBlank
    description: NonBlank


@dataclass
class PipelineEvent:
    run_id: str
    type: str
    payload: Dict[str, Any]


EventCallback = Callable[[PipelineEvent], Awaitable[None]]


@dataclass
class PipelineRunResult:
    run_id: str
    status: str
    output: Optional[Dict[str, Any]] = None
    error: Optional[BaseException] = None
    failed_step: Optional[str] = None
    step_outputs: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == RUN_SUCCESS
