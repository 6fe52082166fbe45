"""
Sequential workflow runner plus the fixed two-step workshop pipeline.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

import httpx
from pydantic import BaseModel

from ..errors import PreconditionError
from ..prompts.loader import PromptLoader
from ..services.model_client import ModelClient
from ..utils.config_loader import Settings
from .schema import schema_satisfies, validate
from .steps import GenerateKeyPointsStep, RefineDescriptionStep, Step
from .types import (
    RUN_FAILED,
    RUN_SUCCESS,
    EventCallback,
    PipelineEvent,
    PipelineRunResult,
    WorkshopBrief,
    WorkshopListing,
)

LOGGER = logging.getLogger(__name__)
ROOT_DIR = Path(__file__).resolve().parents[1]
WORKSHOP_WORKFLOW_ID = "workshop-workflow"


class Workflow:
    """An ordered, linear chain of steps with checked schema boundaries."""

    def __init__(
        self,
        *,
        workflow_id: str,
        steps: Sequence[Step],
        input_schema: Type[BaseModel],
        output_schema: Type[BaseModel],
    ) -> None:
        if not steps:
            raise ValueError(f"workflow {workflow_id} has no steps")
        self.workflow_id = workflow_id
        self.steps: List[Step] = list(steps)
        self.input_schema = input_schema
        self.output_schema = output_schema
        self._check_chain()

    def create_run(
        self,
        *,
        run_id: Optional[str] = None,
        event_callback: Optional[EventCallback] = None,
    ) -> "WorkflowRun":
        return WorkflowRun(self, run_id=run_id, event_callback=event_callback)

    def _check_chain(self) -> None:
        problems: List[str] = []
        links = [(self.input_schema, self.steps[0].input_schema, "workflow input")]
        for previous, current in zip(self.steps, self.steps[1:]):
            links.append((previous.output_schema, current.input_schema, f"{previous.step_id} -> {current.step_id}"))
        links.append((self.steps[-1].output_schema, self.output_schema, "workflow output"))
        for producer, consumer, label in links:
            problems.extend(f"{label}: {problem}" for problem in schema_satisfies(producer, consumer))
        if problems:
            raise ValueError(f"workflow {self.workflow_id} is not a valid chain: " + "; ".join(problems))


class WorkflowRun:
    """Executes a workflow once. Step k's output is the only input to step k+1."""

    def __init__(
        self,
        workflow: Workflow,
        *,
        run_id: Optional[str] = None,
        event_callback: Optional[EventCallback] = None,
    ) -> None:
        self.workflow = workflow
        self.run_id = run_id or uuid.uuid4().hex
        self._event_callback = event_callback
        self._started = False

    async def start(self, input_data: Mapping[str, Any]) -> PipelineRunResult:
        if self._started:
            raise RuntimeError(f"run {self.run_id} has already been started")
        self._started = True

        result = PipelineRunResult(run_id=self.run_id, status=RUN_FAILED)
        LOGGER.info("run started workflow=%s run_id=%s", self.workflow.workflow_id, self.run_id)
        await self._emit("run_started", {"workflow_id": self.workflow.workflow_id})

        current: Dict[str, Any] = dict(input_data)
        for step in self.workflow.steps:
            await self._emit("step_started", {"step_id": step.step_id})
            start = time.perf_counter()
            try:
                current = await step.execute(current)
            except Exception as exc:  # noqa: BLE001
                result.timings[step.step_id] = time.perf_counter() - start
                result.error = exc
                result.failed_step = step.step_id
                LOGGER.error("step %s failed: %s", step.step_id, exc)
                await self._emit("step_failed", {"step_id": step.step_id, "message": str(exc)})
                await self._emit("run_failed", {"step_id": step.step_id, "message": str(exc)})
                return result
            result.timings[step.step_id] = time.perf_counter() - start
            result.step_outputs[step.step_id] = current
            await self._emit("step_completed", {"step_id": step.step_id, "output": current})

        final = validate(self.workflow.output_schema, current)
        result.status = RUN_SUCCESS
        result.output = final.dump()
        LOGGER.info("run completed run_id=%s timings=%s", self.run_id, result.timings)
        await self._emit("run_completed", {"output": result.output})
        return result

    async def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if not self._event_callback:
            return
        event = PipelineEvent(run_id=self.run_id, type=event_type, payload=payload)
        try:
            await self._event_callback(event)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Event callback failed: %s", exc)


def build_workshop_workflow(client: ModelClient, prompts: PromptLoader) -> Workflow:
    return Workflow(
        workflow_id=WORKSHOP_WORKFLOW_ID,
        steps=[GenerateKeyPointsStep(client, prompts), RefineDescriptionStep(client, prompts)],
        input_schema=WorkshopBrief,
        output_schema=WorkshopListing,
    )


async def run_workshop_pipeline(
    settings: Settings,
    brief: Mapping[str, Any],
    *,
    event_callback: Optional[EventCallback] = None,
) -> PipelineRunResult:
    prompts = build_prompt_loader(settings)
    async with build_model_client(settings) as client:
        workflow = build_workshop_workflow(client, prompts)
        run = workflow.create_run(event_callback=event_callback)
        return await run.start(brief)


def build_prompt_loader(settings: Settings) -> PromptLoader:
    prompt_base = settings.prompt.get("base_dir") or "prompts"
    prompt_root = Path(prompt_base)
    if not prompt_root.is_absolute():
        prompt_root = ROOT_DIR / prompt_root
    return PromptLoader(base_dir=prompt_root)


def build_model_client(settings: Settings) -> ModelClient:
    model_cfg = settings.model
    model_name = model_cfg.get("name")
    if not model_name:
        raise PreconditionError("Please configure model.name in settings.yaml")
    api_key = model_cfg.get("api_key")
    if not api_key:
        raise PreconditionError("Model API key is missing. Set model.api_key (or OPENAI_API_KEY)")

    base_url = _normalize_url(model_cfg.get("base_url"))
    timeout = float(model_cfg.get("timeout", 60))
    LOGGER.info("model client: name=%s base_url=%s timeout=%s", model_name, base_url, timeout)
    return ModelClient(model=model_name, api_key=api_key, base_url=base_url, timeout=timeout)


def _normalize_url(raw_url: Any) -> str:
    """Trim, ensure scheme, validate, and echo a clearer error on bad URLs."""
    url = str(raw_url or "").strip()
    if not url:
        raise PreconditionError("Model endpoint is not configured. Set model.base_url")
    if not url.startswith(("http://", "https://")):
        url = f"https://{url.lstrip('/')}"
    try:
        parsed = httpx.URL(url)
    except Exception as exc:
        raise PreconditionError(f"Model endpoint is invalid: {raw_url}") from exc
    return str(parsed)
