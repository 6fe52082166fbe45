from unittest.mock import patch

import pytest

from workshop_launcher.errors import PreconditionError, SchemaViolation
from workshop_launcher.pipeline.orchestrator import (
    Workflow,
    build_model_client,
    build_prompt_loader,
    build_workshop_workflow,
    run_workshop_pipeline,
)
from workshop_launcher.pipeline.steps import GenerateKeyPointsStep, RefineDescriptionStep
from workshop_launcher.pipeline.types import RUN_FAILED, RUN_SUCCESS, KeyPoints, WorkshopBrief, WorkshopListing
from workshop_launcher.utils.config_loader import Settings

from conftest import FakeModelClient


class StructuredKeyPointsStep(GenerateKeyPointsStep):
    """Key-points step that asks for a structured {keyPoints} reply."""

    response_schema = KeyPoints

    def to_output(self, value, reply):
        return reply


class TestWorkshopWorkflow:
    """Two-step run: key points, then title/description"""

    @pytest.mark.asyncio
    async def test_end_to_end_success(self, prompts, brief, listing_json):
        """
        Test: Full run with conformant replies
        How: Queue a key-points text and a structured listing
        Ensures: Status success, final output carries non-empty title and description
        """
        client = FakeModelClient(texts=["- networks\n- routing"], structured=[listing_json])
        workflow = build_workshop_workflow(client, prompts)

        result = await workflow.create_run(run_id="run-1").start(brief)

        assert result.status == RUN_SUCCESS
        assert result.succeeded
        assert result.run_id == "run-1"
        assert result.output["title"]
        assert result.output["description"]
        assert result.error is None
        assert result.step_outputs["generate-key-points"] == {"keyPoints": "- networks\n- routing"}
        assert list(result.timings) == ["generate-key-points", "refine-description"]

    @pytest.mark.asyncio
    async def test_steps_run_in_order_and_chain_outputs(self, prompts, brief, listing_json):
        client = FakeModelClient(texts=["KP-TEXT"], structured=[listing_json])
        workflow = build_workshop_workflow(client, prompts)

        await workflow.create_run().start(brief)

        assert [kind for kind, _ in client.calls] == ["text", "structured"]
        assert "KP-TEXT" in client.calls[1][1].user_prompt

    @pytest.mark.asyncio
    async def test_step_one_failure_skips_step_two(self, prompts, brief, listing_json):
        error = TimeoutError("upstream hung up")
        client = FakeModelClient(texts=[error], structured=[listing_json])
        workflow = build_workshop_workflow(client, prompts)

        result = await workflow.create_run().start(brief)

        assert result.status == RUN_FAILED
        assert result.error is error
        assert result.failed_step == "generate-key-points"
        assert result.output is None
        assert [kind for kind, _ in client.calls] == ["text"]

    @pytest.mark.asyncio
    async def test_malformed_structured_output_at_step_one(self, prompts, brief, listing_json):
        """
        Test: Step 1 declares a response schema and the model breaks it
        How: Queue invalid JSON for the structured key-points call
        Ensures: Run fails with SchemaViolation and step 2 never runs
        """
        client = FakeModelClient(structured=["not json at all", listing_json])
        workflow = Workflow(
            workflow_id="structured-workflow",
            steps=[StructuredKeyPointsStep(client, prompts), RefineDescriptionStep(client, prompts)],
            input_schema=WorkshopBrief,
            output_schema=WorkshopListing,
        )

        result = await workflow.create_run().start(brief)

        assert result.status == RUN_FAILED
        assert isinstance(result.error, SchemaViolation)
        assert result.failed_step == "generate-key-points"
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_listing_missing_description_fails(self, prompts, brief):
        client = FakeModelClient(texts=["points"], structured=['{"title": "T"}'])
        workflow = build_workshop_workflow(client, prompts)

        result = await workflow.create_run().start(brief)

        assert result.status == RUN_FAILED
        assert isinstance(result.error, SchemaViolation)
        assert result.failed_step == "refine-description"

    @pytest.mark.asyncio
    async def test_invalid_initial_input_fails_before_any_call(self, prompts):
        client = FakeModelClient(texts=["unused"])
        workflow = build_workshop_workflow(client, prompts)

        result = await workflow.create_run().start({"hosts": "A"})

        assert result.status == RUN_FAILED
        assert isinstance(result.error, SchemaViolation)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_run_cannot_be_started_twice(self, prompts, brief, listing_json):
        client = FakeModelClient(texts=["points"], structured=[listing_json])
        run = build_workshop_workflow(client, prompts).create_run()
        await run.start(brief)

        with pytest.raises(RuntimeError):
            await run.start(brief)


class TestWorkflowEvents:
    @pytest.mark.asyncio
    async def test_event_sequence(self, prompts, brief, listing_json):
        seen = []

        async def callback(event):
            seen.append((event.type, event.payload.get("step_id")))

        client = FakeModelClient(texts=["points"], structured=[listing_json])
        run = build_workshop_workflow(client, prompts).create_run(event_callback=callback)

        await run.start(brief)

        assert seen == [
            ("run_started", None),
            ("step_started", "generate-key-points"),
            ("step_completed", "generate-key-points"),
            ("step_started", "refine-description"),
            ("step_completed", "refine-description"),
            ("run_completed", None),
        ]

    @pytest.mark.asyncio
    async def test_failed_run_events(self, prompts, brief):
        seen = []

        async def callback(event):
            seen.append(event.type)

        client = FakeModelClient(texts=[ValueError("boom")])
        run = build_workshop_workflow(client, prompts).create_run(event_callback=callback)

        await run.start(brief)

        assert seen == ["run_started", "step_started", "step_failed", "run_failed"]

    @pytest.mark.asyncio
    async def test_callback_errors_do_not_fail_the_run(self, prompts, brief, listing_json):
        async def callback(event):
            raise RuntimeError("display broke")

        client = FakeModelClient(texts=["points"], structured=[listing_json])
        run = build_workshop_workflow(client, prompts).create_run(event_callback=callback)

        result = await run.start(brief)

        assert result.status == RUN_SUCCESS


class TestWorkflowChain:
    def test_incompatible_chain_is_rejected(self, prompts):
        client = FakeModelClient()

        with pytest.raises(ValueError) as excinfo:
            Workflow(
                workflow_id="broken",
                steps=[RefineDescriptionStep(client, prompts), GenerateKeyPointsStep(client, prompts)],
                input_schema=KeyPoints,
                output_schema=KeyPoints,
            )

        assert "refine-description -> generate-key-points" in str(excinfo.value)

    def test_empty_workflow_is_rejected(self):
        with pytest.raises(ValueError):
            Workflow(workflow_id="empty", steps=[], input_schema=WorkshopBrief, output_schema=WorkshopListing)


class TestWorkshopPipelineSetup:
    def _settings(self, **model):
        return Settings(raw={"model": model, "prompt": {"base_dir": "prompts"}})

    def test_missing_model_name(self):
        with pytest.raises(PreconditionError):
            build_model_client(self._settings(api_key="k", base_url="https://api.example.com/v1"))

    def test_missing_api_key(self):
        with pytest.raises(PreconditionError):
            build_model_client(self._settings(name="gpt-4o-mini", base_url="https://api.example.com/v1"))

    def test_missing_endpoint(self):
        with pytest.raises(PreconditionError):
            build_model_client(self._settings(name="gpt-4o-mini", api_key="k"))

    def test_endpoint_scheme_is_added(self):
        with patch("workshop_launcher.pipeline.orchestrator.ModelClient") as client_cls:
            build_model_client(self._settings(name="gpt-4o-mini", api_key="k", base_url="api.example.com/v1"))

        assert client_cls.call_args.kwargs["base_url"] == "https://api.example.com/v1"

    def test_prompt_loader_resolves_package_prompts(self):
        loader = build_prompt_loader(self._settings())

        assert loader.system("description")

    @pytest.mark.asyncio
    async def test_run_workshop_pipeline_uses_built_client(self, brief, listing_json):
        fake = FakeModelClient(texts=["points"], structured=[listing_json])

        class _Ctx:
            async def __aenter__(self):
                return fake

            async def __aexit__(self, *exc):
                return None

        with patch("workshop_launcher.pipeline.orchestrator.build_model_client", return_value=_Ctx()):
            result = await run_workshop_pipeline(self._settings(), brief)

        assert result.status == RUN_SUCCESS
        assert len(fake.calls) == 2
