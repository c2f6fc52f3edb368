"""CLI entry point for screenshot-diff."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from screenshot_diff.artifacts import ArtifactStore
from screenshot_diff.baseline.resolver import BaselineResolver
from screenshot_diff.baseline.vcs import make_vcs
from screenshot_diff.capture.source import ImageFileCaptureSource
from screenshot_diff.errors import ImageDecodeError, ScreenshotDiffError
from screenshot_diff.imaging.buffer import ImageBuffer
from screenshot_diff.imaging.diff_engine import DiffEngine
from screenshot_diff.models.config import DiffConfig
from screenshot_diff.models.identity import Identity
from screenshot_diff.report import failure_message, render_summary, write_json_report
from screenshot_diff.runner import SessionRequest, SessionRunner

console = Console()

DEFAULT_CONFIG = "screenshot-diff.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> DiffConfig:
    try:
        return DiffConfig.load(path)
    except FileNotFoundError:
        if path != DEFAULT_CONFIG:
            console.print(f"[red]Config file not found: {path}[/red]")
            sys.exit(2)
        console.print("[yellow]No config file found, using defaults[/yellow]")
        return DiffConfig()


def _parse_identity(name: str) -> Identity:
    try:
        return Identity.parse(name)
    except ValueError as e:
        console.print(f"[red]Invalid screenshot name {name!r}: {escape(str(e))}[/red]")
        sys.exit(2)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression testing against version-controlled screenshots"""
    setup_logging(verbose)


@cli.command()
@click.argument("baseline", type=click.Path(exists=True, dir_okay=False))
@click.argument("current", type=click.Path(exists=True, dir_okay=False))
@click.option("--diff", "diff_path", type=click.Path(dir_okay=False), help="Write a diff image here")
@click.option("--color-distance-limit", type=float, help="Max per-pixel color distance")
@click.option("--area-size-limit", type=int, help="Max number of differing pixels")
@click.option("--noise-floor", type=float, help="Ignore pixel differences up to this distance")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def compare(
    baseline: str,
    current: str,
    diff_path: str | None,
    color_distance_limit: float | None,
    area_size_limit: int | None,
    noise_floor: float | None,
    config: str,
) -> None:
    """Compare two image files."""
    cfg = _load_config(config)
    thresholds = cfg.thresholds.merged(color_distance_limit, area_size_limit, noise_floor)
    try:
        old = ImageBuffer.from_path(baseline)
        new = ImageBuffer.from_path(current)
    except ImageDecodeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    engine = DiffEngine()
    verdict = engine.compare(old, new, thresholds).model_copy(update={"name": Path(current).name})
    if verdict.is_different and diff_path:
        path = engine.write_diff(old, new, Path(diff_path), thresholds.noise_floor)
        verdict = verdict.model_copy(update={"diff_image_path": str(path)})

    table = Table(title="Comparison")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Result", verdict.status.value)
    table.add_row("Baseline size", f"{old.width}x{old.height}")
    table.add_row("Current size", f"{new.width}x{new.height}")
    table.add_row("Differing pixels", str(verdict.diff_area))
    table.add_row("Max color distance", f"{verdict.rounded_max_color_distance:.1f}")
    if verdict.diff_region:
        table.add_row("Region", str(verdict.diff_region.as_list()))
    console.print(table)

    if verdict.is_different:
        console.print(f"[red]{failure_message(verdict)}[/red]")
        sys.exit(1)
    console.print("[green]Images match[/green]")


@cli.command()
@click.argument("name")
@click.option("--image", "-i", required=True, type=click.Path(exists=True, dir_okay=False),
              help="Freshly rendered image to check")
@click.option("--color-distance-limit", type=float, help="Max per-pixel color distance")
@click.option("--area-size-limit", type=int, help="Max number of differing pixels")
@click.option("--report", "report_path", type=click.Path(dir_okay=False), help="Write a JSON report")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def check(
    name: str,
    image: str,
    color_distance_limit: float | None,
    area_size_limit: int | None,
    report_path: str | None,
    config: str,
) -> None:
    """Check an image against the committed baseline of screenshot NAME.

    The image is stored at the screenshot's working-tree path, ready to be
    committed as the new baseline.
    """
    cfg = _load_config(config)
    identity = _parse_identity(name)
    thresholds = cfg.thresholds.merged(color_distance_limit, area_size_limit)
    runner = SessionRunner.from_config(cfg)
    outcomes = runner.run_all_sync(
        [SessionRequest(identity, ImageFileCaptureSource(image), thresholds=thresholds)]
    )
    if not outcomes:
        console.print("[yellow]Screenshots are disabled in the configuration[/yellow]")
        return

    render_summary(outcomes, console)
    if report_path:
        write_json_report(outcomes, Path(report_path))

    outcome = outcomes[0]
    if outcome.error:
        console.print(f"[red]{outcome.error_type}: {outcome.error}[/red]")
        sys.exit(2)
    if outcome.verdict.is_different:
        console.print(f"[red]{failure_message(outcome.verdict)}[/red]")
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline(name: str, config: str) -> None:
    """Show the committed baseline of screenshot NAME."""
    cfg = _load_config(config)
    store = ArtifactStore.from_config(cfg)
    resolver = BaselineResolver(make_vcs(cfg.vcs, cfg.repository_root, use_lfs=cfg.use_lfs), store)
    identity = _parse_identity(name)
    try:
        buffer = resolver.resolve(identity)
    except ScreenshotDiffError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    if buffer is None:
        console.print(f"[yellow]No committed baseline for {identity.name}[/yellow]")
        sys.exit(1)
    console.print(
        f"[green]{store.repository_path(identity)}[/green]: "
        f"{buffer.width}x{buffer.height}, {len(buffer.encoded())} bytes"
    )


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def clean(config: str) -> None:
    """Remove diff images and leftovers of unstable captures."""
    cfg = _load_config(config)
    area = ArtifactStore.from_config(cfg).area_dir
    if not area.exists():
        console.print(f"[yellow]Nothing to clean in {area}[/yellow]")
        return
    removed = 0
    for pattern in ("*.diff.png", "*_x[0-9][0-9].png~"):
        for path in area.rglob(pattern):
            path.unlink()
            removed += 1
    console.print(f"[green]Removed {removed} files from {area}[/green]")


@cli.command()
@click.option("--area", "-a", prompt="Screenshot directory", default="doc/screenshots",
              help="Where screenshots are stored, relative to the repository root")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def init(area: str, config: str) -> None:
    """Create a default configuration file."""
    config_path = Path(config)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = DiffConfig(screenshot_area=area)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nCheck a rendered image against its committed baseline with:")
    console.print("  [blue]screenshot-diff check login/01_form --image form.png[/blue]")


if __name__ == "__main__":
    cli()
