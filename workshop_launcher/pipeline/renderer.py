"""
CLI rendering helpers. Model output and service fields are printed as plain text.
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..provisioning.types import ProvisionedResource, ProvisioningResult
from .types import PipelineEvent, PipelineRunResult

console = Console()

_STEP_MESSAGES = {
    "generate-key-points": "Generating key points...",
    "refine-description": "Refining into workshop description...",
}


async def render_event(event: PipelineEvent) -> None:
    """Progress output for a running pipeline; used as the event callback."""

    payload = event.payload
    if event.type == "step_started":
        step_id = payload.get("step_id", "")
        console.print(f"[bold]{escape(_STEP_MESSAGES.get(step_id, step_id))}[/bold]")
    elif event.type == "step_completed" and "keyPoints" in payload.get("output", {}):
        console.print(Panel(Text(payload["output"]["keyPoints"]), title="Key Points Generated", expand=False))
    elif event.type == "step_failed":
        console.print(f"[red]{escape(str(payload.get('step_id')))} failed: {escape(str(payload.get('message')))}[/red]")


def render_listing(result: PipelineRunResult) -> None:
    if not result.succeeded or not result.output:
        console.print(f"\nWorkflow status: [red]{escape(result.status)}[/red]")
        return
    console.print(
        Panel(
            Text(result.output["description"]),
            title=f"Title: {escape(result.output['title'])}",
            subtitle="Final Workshop Description",
            expand=False,
        )
    )
    timings = ", ".join(f"{step} {seconds:.2f}s" for step, seconds in result.timings.items())
    console.print(f"\n[green]Workflow completed successfully![/green] ({escape(timings)})")


def render_resource(resource: ProvisionedResource) -> None:
    label = "Join URL" if resource.kind == "webinar" else "Event URL"
    console.print(f"[green]{escape(resource.kind.capitalize())} created successfully![/green]")
    console.print(f"{label}: {escape(resource.url)}")


def render_provisioning(result: ProvisioningResult) -> None:
    table = Table(title="Provisioned", show_header=True)
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("ID", style="white")
    table.add_column("URL", style="white")
    for resource in result.resources:
        table.add_row(Text(resource.kind), Text(resource.id), Text(resource.url))
    console.print(table)
