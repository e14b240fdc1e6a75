"""
cli.py - Developer CLI for capability manifests

Inspect what the discovery engine would see, without an embedding provider.

Usage:
    capability-discovery scan                      # Manifests in default dirs
    capability-discovery scan ./caps --json        # Descriptors as JSON
    capability-discovery overview ./caps           # Tier-0 category overview
    capability-discovery related tool:git ./caps   # Graph neighbors
    capability-discovery schema                    # DiscoveryConfig JSON schema
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .assembler import CapabilityContextAssembler, estimate_tokens
from .config.logging import configure_logging
from .config.settings import discovery_config_json_schema, get_setting
from .graph import CapabilityGraph
from .manifest import CapabilityManifestScanner
from .types import CapabilityDescriptor

app = typer.Typer(
    name="capability-discovery",
    help="Inspect capability manifests and the capability graph",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    configure_logging(level="DEBUG" if verbose else get_setting("logging.level", "INFO"))


def _scan(dirs: Optional[list[Path]]) -> list[CapabilityDescriptor]:
    scanner = CapabilityManifestScanner()
    if dirs:
        return scanner.scan(dirs)
    configured = get_setting("manifest.dirs", []) or []
    return scanner.scan([*scanner.get_default_dirs(), *(Path(d) for d in configured)])


@app.command("scan")
def scan_command(
    dirs: Optional[list[Path]] = typer.Argument(None, help="Directories to scan"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """List capabilities declared by CAPABILITY.yaml manifests."""
    descriptors = _scan(dirs)

    if json_output:
        payload = [d.model_dump(by_alias=True, exclude_none=True) for d in descriptors]
        console.print_json(json.dumps(payload))
        return

    if not descriptors:
        err_console.print("[yellow]No capability manifests found.[/yellow]")
        return

    table = Table(title=f"Capabilities ({len(descriptors)})", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Category", style="green")
    table.add_column("Description")

    for d in descriptors:
        description = d.description if len(d.description) <= 60 else d.description[:57] + "..."
        table.add_row(d.id, d.kind, d.category, description)

    console.print(table)


@app.command("overview")
def overview_command(
    dirs: Optional[list[Path]] = typer.Argument(None, help="Directories to scan"),
):
    """Print the tier-0 category overview for the scanned capabilities."""
    descriptors = _scan(dirs)
    text = CapabilityContextAssembler().build_tier0(descriptors, 1)
    console.print(Panel(text, title="Tier 0", subtitle=f"~{estimate_tokens(text)} tokens"))


@app.command("related")
def related_command(
    capability_id: str = typer.Argument(..., help="Capability id, e.g. skill:github"),
    dirs: Optional[list[Path]] = typer.Argument(None, help="Directories to scan"),
):
    """Show graph neighbors of one capability."""
    descriptors = _scan(dirs)
    graph = CapabilityGraph()
    graph.build_graph(descriptors)

    if not graph.has_node(capability_id):
        err_console.print(f"[red]Unknown capability: {capability_id}[/red]")
        raise typer.Exit(1)

    related = graph.get_related(capability_id)
    if not related:
        console.print(f"[dim]{capability_id} has no related capabilities.[/dim]")
        return

    table = Table(title=f"Related to {capability_id}", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Relation", style="magenta")
    table.add_column("Weight", justify="right")
    for rel in related:
        table.add_row(rel.id, rel.relation_type, f"{rel.weight:.2f}")
    console.print(table)


@app.command("schema")
def schema_command():
    """Print the JSON schema of the discovery settings section."""
    console.print_json(json.dumps(discovery_config_json_schema()))


__all__ = ["app"]
