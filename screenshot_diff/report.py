"""Failure messages, collected assertions and run summaries."""

from __future__ import annotations

import json
import logging
import traceback
from pathlib import Path

from rich.console import Console
from rich.table import Table

from screenshot_diff.models.verdict import SessionOutcome, Verdict, VerdictStatus

logger = logging.getLogger(__name__)


def caller_location(skip: int = 1) -> str:
    """``file:line:in function`` of the frame ``skip`` levels above the caller."""
    frames = traceback.extract_stack()
    index = max(len(frames) - 2 - skip, 0)
    frame = frames[index]
    return f"{frame.filename}:{frame.lineno}:in `{frame.name}`"


def failure_message(verdict: Verdict, caller: str | None = None) -> str | None:
    """Describe a ``different`` verdict; None for any other verdict."""
    if not verdict.is_different:
        return None
    region = verdict.diff_region.as_list() if verdict.diff_region else []
    lines = [
        f"Screenshot does not match for '{verdict.name}' "
        f"(area: {verdict.diff_area}px {region}, "
        f"max_color_distance: {verdict.rounded_max_color_distance})"
    ]
    if verdict.dimension_mismatch and verdict.baseline_size and verdict.current_size:
        (bw, bh), (cw, ch) = verdict.baseline_size, verdict.current_size
        lines.append(f"size changed from {bw}x{bh} to {cw}x{ch}")
    if verdict.stabilization.is_best_effort:
        lines.append(
            f"screenshot was not stable ({verdict.stabilization.outcome.value} "
            f"after {verdict.stabilization.attempts} captures)"
        )
    if verdict.diff_image_path:
        lines.append(verdict.diff_image_path)
    if caller:
        lines.append(f"at {caller}")
    return "\n".join(lines)


class ScreenshotRecorder:
    """Collects verdicts during one test and fails it at the end if any differ."""

    def __init__(self):
        self.records: list[tuple[str | None, Verdict]] = []

    def record(self, verdict: Verdict, caller: str | None = None) -> None:
        if verdict.status == VerdictStatus.NO_BASELINE:
            return
        self.records.append((caller or caller_location(), verdict))

    def failure_messages(self) -> list[str]:
        messages = []
        for caller, verdict in self.records:
            message = failure_message(verdict, caller)
            if message:
                messages.append(message)
        return messages

    def assert_no_changes(self) -> None:
        """Raise AssertionError listing every changed screenshot; always resets."""
        messages = self.failure_messages()
        self.records = []
        if messages:
            raise AssertionError("\n\n".join(messages))


def outcome_message(outcome: SessionOutcome) -> str:
    if outcome.error:
        return f"{outcome.error_type}: {outcome.error}"
    if outcome.verdict is None:
        return ""
    return failure_message(outcome.verdict, outcome.caller) or ""


def render_summary(outcomes: list[SessionOutcome], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(title="Screenshot Comparison")
    table.add_column("Screenshot", style="bold")
    table.add_column("Result")
    table.add_column("Area", justify="right")
    table.add_column("Max distance", justify="right")
    table.add_column("Stabilization")
    for outcome in outcomes:
        verdict = outcome.verdict
        if verdict is None:
            table.add_row(outcome.name, f"[red]error[/red] {outcome.error_type}", "", "", "")
            continue
        color = {
            VerdictStatus.IDENTICAL: "green",
            VerdictStatus.DIFFERENT: "red",
            VerdictStatus.NO_BASELINE: "yellow",
        }[verdict.status]
        table.add_row(
            outcome.name,
            f"[{color}]{verdict.status.value}[/{color}]",
            str(verdict.diff_area),
            f"{verdict.rounded_max_color_distance:.1f}",
            f"{verdict.stabilization.outcome.value} ({verdict.stabilization.attempts})",
        )
    console.print(table)


def write_json_report(outcomes: list[SessionOutcome], output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    report = {
        "total": len(outcomes),
        "failed": sum(1 for o in outcomes if o.failed),
        "screenshots": [o.model_dump(mode="json") for o in outcomes],
    }
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(report, f, indent=2, default=str)
    logger.info("JSON report: %s", output_path)
