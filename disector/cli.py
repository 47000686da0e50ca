"""CLI entry point for disector."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from disector.models.config import DisectorConfig
from disector.models.device import DeviceRegistry
from disector.models.report import ReductionStats
from disector.orchestrator import Orchestrator
from disector.phases.registry import PHASE_ORDER
from disector.session.browser import load_device_descriptors

# stdout carries nothing but the reduced document
console = Console(stderr=True)
logger = logging.getLogger("disector")

DEFAULT_DUMP_DIR = "disector-dump"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def split_values(values: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated option values.

    Device names contain spaces, so values are never split on whitespace.
    """
    return [part.strip() for value in values for part in value.split(",") if part.strip()]


def build_config(
    config: Optional[str],
    show: bool,
    devices: tuple[str, ...],
    phases: tuple[str, ...],
    dump_dir: Optional[str],
    dump: bool,
    diff: bool,
) -> DisectorConfig:
    """Load the config file (if any) and apply command-line overrides."""
    cfg = DisectorConfig.load(config) if config else DisectorConfig()
    data = cfg.model_dump()
    if show:
        data["headless"] = False
    if devices:
        data["devices"] = split_values(devices)
    if phases:
        data["phases"] = split_values(phases)
    if dump_dir:
        data["dump_dir"] = dump_dir
    if dump:
        data["dump_renders"] = True
    if diff:
        data["dump_diffs"] = True
    if (dump or diff) and not data["dump_dir"]:
        data["dump_dir"] = DEFAULT_DUMP_DIR
    return DisectorConfig(**data)


def stats_table(stats: ReductionStats) -> Table:
    table = Table(title="Reduction Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Renders", str(stats.renders))
    table.add_row("Failed checks", str(stats.failed_checks))
    table.add_row("Input size", f"{stats.input_size} bytes")
    for phase in stats.phases:
        size = stats.phase_sizes.get(phase.phase)
        table.add_row(
            f"Phase {phase.phase}",
            f"{phase.removed}/{phase.tested} removed, {size} bytes",
        )
    table.add_row("Final size", f"{stats.final_size} bytes")
    verdict = "[green]pristine[/green]" if stats.pristine else "[red]not pristine[/red]"
    table.add_row("Final check", verdict)
    return table


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging (per-mutation trace)")
def cli(verbose: bool) -> None:
    """Reduce an HTML/CSS document while keeping it pixel-identical."""
    setup_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--show", "-s", is_flag=True, help="Run the browser headed instead of headless")
@click.option("--devices", "-d", multiple=True,
              help="Device profile to validate against. Repeat the flag or separate names "
                   "with commas; quote names with spaces (-d 'iPad Pro landscape')")
@click.option("--phase", "-p", "phases", multiple=True,
              help=f"Phase to enable. Repeat the flag or separate names with commas: "
                   f"{', '.join(PHASE_ORDER)}")
@click.option("--out", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the result here instead of stdout")
@click.option("--overwrite", is_flag=True, help="Write the result back to PATH")
@click.option("--config", "-c", default=None, help="Config file path")
@click.option("--dump-dir", default=None, help="Directory for diagnostic images")
@click.option("--dump", is_flag=True, help="Dump every render and its markup")
@click.option("--diff", is_flag=True, help="Dump diff images of failed checks")
@click.option("--stats", "show_stats", is_flag=True, help="Print a summary table")
def reduce(
    path: Path,
    show: bool,
    devices: tuple[str, ...],
    phases: tuple[str, ...],
    out: Optional[Path],
    overwrite: bool,
    config: Optional[str],
    dump_dir: Optional[str],
    dump: bool,
    diff: bool,
    show_stats: bool,
) -> None:
    """Reduce the document at PATH."""
    try:
        cfg = build_config(config, show, devices, phases, dump_dir, dump, diff)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    source = path.read_text(encoding="utf-8")
    try:
        result = Orchestrator(source, cfg, name=path.name).run()
    except Exception as e:
        logger.exception("Reduction failed")
        console.print(f"[red]Reduction failed: {e}[/red]")
        sys.exit(1)

    destination = out or (path if overwrite else None)
    if destination is not None:
        destination.write_text(result.document, encoding="utf-8")
        console.print(f"[green]Wrote[/green] {destination}")
    else:
        click.echo(result.document)

    if not result.pristine:
        console.print("[yellow]Final check failed: the result may not render identically[/yellow]")
    if show_stats:
        console.print(stats_table(result.stats))


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include Playwright's device descriptors")
def devices(show_all: bool) -> None:
    """List the device profiles that can be passed to --devices."""
    descriptors = asyncio.run(load_device_descriptors()) if show_all else {}
    registry = DeviceRegistry(descriptors=descriptors)
    for name in registry.names():
        console.print(f"  {name}")


@cli.command()
@click.option("--config", "-c", default="disector.json", help="Config file path")
def init(config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?", err=True):
            return

    DisectorConfig().save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print(f"  [blue]disector reduce page.html --config {config_path}[/blue]")


if __name__ == "__main__":
    cli()
