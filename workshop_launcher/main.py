"""
Typer CLI entrypoint for Workshop Launcher.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from ruamel.yaml import YAML

from .errors import PreconditionError, ProvisioningFailed
from .pipeline.orchestrator import run_workshop_pipeline
from .pipeline.renderer import render_event, render_listing, render_provisioning, render_resource
from .pipeline.types import PipelineRunResult
from .provisioning.driver import ProvisioningDriver, build_event_client, build_webinar_client, load_cover_image
from .provisioning.schedule import format_instant, next_weekday_at
from .provisioning.types import EventRequest, ProvisionedResource, ProvisioningPlan, ProvisioningResult, WebinarRequest
from .utils.config_loader import ProvisioningConfig, Settings, load_settings, provisioning_config

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(add_completion=False)

DEFAULT_DESCRIPTION = "Mastra Workshop"
EVENT_USAGE = "Usage: workshop-launcher create-event <title> [description] [duration-in-minutes] [meetingUrl]"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


@app.command("create-event", help="Create a public event listing scheduled for the next workshop slot.")
def create_event(
    title: Optional[str] = typer.Argument(None, help="Event title"),
    description: str = typer.Argument(DEFAULT_DESCRIPTION, help="Event description (markdown)"),
    duration: int = typer.Argument(60, help="Duration in minutes"),
    meeting_url: Optional[str] = typer.Argument(None, help="Meeting link shown to attendees"),
    cover: Optional[Path] = typer.Option(None, "--cover", help="PNG cover image to upload"),
    settings_path: Path = typer.Option(None, "--settings", "-s", help="Custom settings file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _setup_logging(verbose)
    if not title:
        err_console.print(EVENT_USAGE, markup=False)
        raise typer.Exit(code=1)

    settings = load_settings(settings_path)
    try:
        start_at = _next_slot(settings)
        cover_image = load_cover_image(cover or settings.get("cover", "path"))
        config = provisioning_config(settings)
        console.print(f'Creating event: "{escape(title)}"')
        console.print(f"Description: {escape(description)}")
        console.print(f"Scheduled for: {format_instant(start_at)}")
        console.print(f"Duration: {duration} minutes")
        request = EventRequest(
            title=title,
            description=description,
            start_at=start_at,
            duration=duration,
            meeting_url=meeting_url,
            cover_image=cover_image,
        )
        resource = asyncio.run(_publish_event(config, request))
    except Exception as exc:  # noqa: BLE001
        err_console.print(f"[red]Error creating event: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    console.print()
    render_resource(resource)


@app.command("create-webinar", help="Create a scheduled webinar and print its join URL.")
def create_webinar(
    topic: str = typer.Argument(..., help="Webinar topic"),
    agenda: Optional[str] = typer.Argument(None, help="Webinar agenda"),
    duration: int = typer.Argument(60, help="Duration in minutes"),
    settings_path: Path = typer.Option(None, "--settings", "-s", help="Custom settings file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _setup_logging(verbose)
    settings = load_settings(settings_path)
    try:
        config = provisioning_config(settings)
        request = WebinarRequest(topic=topic, start_time=_next_slot(settings), duration=duration, agenda=agenda)
        console.print(f'Creating webinar: "{escape(topic)}" at {format_instant(request.start_time)}')
        resource = asyncio.run(_create_webinar(config, request))
    except Exception as exc:  # noqa: BLE001
        err_console.print(f"[red]Error creating webinar: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    render_resource(resource)


@app.command(help="Generate a workshop title and description from a brief.")
def generate(
    brief_path: Optional[Path] = typer.Option(None, "--brief", "-b", help="YAML file with hosts/learningOutcomes/targetAudience"),
    hosts: Optional[str] = typer.Option(None, "--hosts", help="Workshop hosts"),
    outcomes: Optional[str] = typer.Option(None, "--outcomes", help="Learning outcomes"),
    audience: Optional[str] = typer.Option(None, "--audience", help="Target audience"),
    settings_path: Path = typer.Option(None, "--settings", "-s", help="Custom settings file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _setup_logging(verbose)
    settings = load_settings(settings_path)
    result = _run_pipeline(settings, _load_brief(brief_path, hosts=hosts, outcomes=outcomes, audience=audience))
    render_listing(result)


@app.command(help="Generate the listing, then create the webinar and the public event.")
def launch(
    brief_path: Optional[Path] = typer.Option(None, "--brief", "-b", help="YAML file with hosts/learningOutcomes/targetAudience"),
    hosts: Optional[str] = typer.Option(None, "--hosts", help="Workshop hosts"),
    outcomes: Optional[str] = typer.Option(None, "--outcomes", help="Learning outcomes"),
    audience: Optional[str] = typer.Option(None, "--audience", help="Target audience"),
    duration: Optional[int] = typer.Option(None, "--duration", help="Duration in minutes"),
    meeting_url: Optional[str] = typer.Option(None, "--meeting-url", help="Use this meeting link instead of the webinar's"),
    cover: Optional[Path] = typer.Option(None, "--cover", help="PNG cover image to upload"),
    with_webinar: bool = typer.Option(True, "--webinar/--no-webinar", help="Create a webinar before the event"),
    settings_path: Path = typer.Option(None, "--settings", "-s", help="Custom settings file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    _setup_logging(verbose)
    settings = load_settings(settings_path)
    brief = _load_brief(brief_path, hosts=hosts, outcomes=outcomes, audience=audience)
    try:
        # credentials and cover must resolve before any remote call
        config = provisioning_config(settings)
        config.require_luma()
        if with_webinar:
            config.require_zoom()
        cover_image = load_cover_image(cover or settings.get("cover", "path"))
    except PreconditionError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    result = _run_pipeline(settings, brief)
    render_listing(result)

    plan = ProvisioningPlan(
        title=result.output["title"],
        description=result.output["description"],
        start_at=_next_slot(settings),
        duration=duration if duration is not None else int(settings.get("schedule", "default_duration", default=60)),
        meeting_url=meeting_url,
        cover_image=cover_image,
    )
    try:
        provisioned = asyncio.run(_provision(config, plan, with_webinar=with_webinar))
    except ProvisioningFailed as exc:
        err_console.print(f"[red]Provisioning failed at {exc.stage}: {escape(str(exc.cause))}[/red]")
        for orphan in exc.created:
            location = orphan.url or "url not resolved"
            err_console.print(f"[yellow]Already created: {orphan.kind} {escape(orphan.id)} {escape(location)}[/yellow]")
        raise typer.Exit(code=1) from exc
    except Exception as exc:  # noqa: BLE001
        err_console.print(f"[red]Provisioning failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    render_provisioning(provisioned)


def _run_pipeline(settings: Settings, brief: Dict[str, Any]) -> PipelineRunResult:
    try:
        result = asyncio.run(run_workshop_pipeline(settings, brief, event_callback=render_event))
    except Exception as exc:  # noqa: BLE001
        err_console.print(f"[red]Pipeline failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    if not result.succeeded:
        render_listing(result)
        err_console.print(f"[red]{result.failed_step}: {escape(str(result.error))}[/red]")
        raise typer.Exit(code=1)
    return result


async def _publish_event(config: ProvisioningConfig, request: EventRequest) -> ProvisionedResource:
    async with build_event_client(config) as client:
        return await client.publish(request)


async def _create_webinar(config: ProvisioningConfig, request: WebinarRequest) -> ProvisionedResource:
    async with build_webinar_client(config) as client:
        return await client.create_webinar(request)


async def _provision(config: ProvisioningConfig, plan: ProvisioningPlan, *, with_webinar: bool) -> ProvisioningResult:
    async with AsyncExitStack() as stack:
        webinar_client = await stack.enter_async_context(build_webinar_client(config)) if with_webinar else None
        event_client = await stack.enter_async_context(build_event_client(config))
        driver = ProvisioningDriver(webinar_client=webinar_client, event_client=event_client)
        return await driver.provision(plan)


def _next_slot(settings: Settings) -> datetime:
    return next_weekday_at(
        settings.get("schedule", "weekday", default="thursday"),
        int(settings.get("schedule", "hour_utc", default=17)),
    )


def _load_brief(
    path: Optional[Path],
    *,
    hosts: Optional[str],
    outcomes: Optional[str],
    audience: Optional[str],
) -> Dict[str, Any]:
    brief: Dict[str, Any] = {}
    if path:
        if not path.is_file():
            err_console.print(f"[red]Brief file not found: {escape(str(path))}[/red]")
            raise typer.Exit(code=1)
        loaded = YAML(typ="safe").load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(loaded, dict):
            err_console.print(f"[red]Brief file must contain a mapping of fields: {escape(str(path))}[/red]")
            raise typer.Exit(code=1)
        brief.update(loaded)
    overrides = {"hosts": hosts, "learningOutcomes": outcomes, "targetAudience": audience}
    brief.update({key: value for key, value in overrides.items() if value is not None})
    return brief


def main() -> None:
    app()


if __name__ == "__main__":
    main()
