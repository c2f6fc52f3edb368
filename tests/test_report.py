"""Tests for failure messages, the recorder and run reports."""

import json
from pathlib import Path

import pytest
from rich.console import Console

from screenshot_diff.models.verdict import (
    DiffRegion,
    SessionOutcome,
    StabilizationOutcome,
    StabilizationReport,
    Verdict,
    VerdictStatus,
)
from screenshot_diff.report import (
    ScreenshotRecorder,
    caller_location,
    failure_message,
    outcome_message,
    render_summary,
    write_json_report,
)


def _different(**overrides) -> Verdict:
    values = dict(
        status=VerdictStatus.DIFFERENT,
        name="login/01_form",
        max_color_distance=80.0,
        diff_area=25,
        diff_region=DiffRegion(left=10, top=20, right=14, bottom=24),
        baseline_size=(100, 100),
        current_size=(100, 100),
        diff_image_path="doc/screenshots/login/01_form.diff.png",
        stabilization=StabilizationReport(outcome=StabilizationOutcome.STABLE, attempts=2),
    )
    values.update(overrides)
    return Verdict(**values)


class TestFailureMessage:
    """Tests for failure_message."""

    def test_headline_format(self):
        """The first line names the screenshot, area, region and distance."""
        message = failure_message(_different(), caller="tests/test_login.py:12")
        lines = message.splitlines()
        assert lines[0] == (
            "Screenshot does not match for 'login/01_form' "
            "(area: 25px [10, 20, 14, 24], max_color_distance: 80.0)"
        )
        assert lines[1] == "doc/screenshots/login/01_form.diff.png"
        assert lines[2] == "at tests/test_login.py:12"

    def test_distance_rounded_up(self):
        message = failure_message(_different(max_color_distance=12.31))
        assert "max_color_distance: 12.4)" in message

    def test_size_change_reported(self):
        verdict = _different(current_size=(100, 120), dimension_mismatch=True)
        assert "size changed from 100x100 to 100x120" in failure_message(verdict)

    def test_unstable_capture_reported(self):
        verdict = _different(
            stabilization=StabilizationReport(outcome=StabilizationOutcome.EXHAUSTED, attempts=10)
        )
        assert "screenshot was not stable (exhausted after 10 captures)" in failure_message(verdict)

    @pytest.mark.parametrize("status", [VerdictStatus.IDENTICAL, VerdictStatus.NO_BASELINE])
    def test_non_different_verdicts_have_no_message(self, status):
        assert failure_message(Verdict(status=status, name="x")) is None


class TestScreenshotRecorder:
    """Tests for collecting verdicts and failing at the end."""

    def test_no_changes_passes(self):
        recorder = ScreenshotRecorder()
        recorder.record(Verdict(status=VerdictStatus.IDENTICAL, name="a"))
        recorder.record(Verdict(status=VerdictStatus.NO_BASELINE, name="b"))
        recorder.assert_no_changes()

    def test_new_screenshots_are_not_recorded(self):
        recorder = ScreenshotRecorder()
        recorder.record(Verdict(status=VerdictStatus.NO_BASELINE, name="b"))
        assert recorder.records == []

    def test_all_differences_listed(self):
        recorder = ScreenshotRecorder()
        recorder.record(_different(name="a"), caller="t.py:1")
        recorder.record(Verdict(status=VerdictStatus.IDENTICAL, name="b"), caller="t.py:2")
        recorder.record(_different(name="c"), caller="t.py:3")

        with pytest.raises(AssertionError) as exc_info:
            recorder.assert_no_changes()
        text = str(exc_info.value)
        assert "for 'a'" in text
        assert "for 'c'" in text
        assert "for 'b'" not in text
        assert len(text.split("\n\n")) == 2

    def test_records_reset_after_assert(self):
        recorder = ScreenshotRecorder()
        recorder.record(_different(), caller="t.py:1")
        with pytest.raises(AssertionError):
            recorder.assert_no_changes()
        recorder.assert_no_changes()

    def test_default_caller_is_recording_site(self):
        recorder = ScreenshotRecorder()
        recorder.record(_different())
        caller, _ = recorder.records[0]
        assert caller.startswith(__file__)
        assert "test_default_caller_is_recording_site" in caller


def test_caller_location_points_at_caller():
    def helper():
        return caller_location()

    location = helper()
    assert location.startswith(__file__)
    assert "test_caller_location_points_at_caller" in location


class TestOutcomeMessage:
    def test_error(self):
        outcome = SessionOutcome(name="a", error="browser gone", error_type="CaptureFailure")
        assert outcome_message(outcome) == "CaptureFailure: browser gone"

    def test_identical(self):
        outcome = SessionOutcome(name="a", verdict=Verdict(status=VerdictStatus.IDENTICAL, name="a"))
        assert outcome_message(outcome) == ""

    def test_different_includes_caller(self):
        outcome = SessionOutcome(name="a", verdict=_different(), caller="t.py:9")
        assert outcome_message(outcome).endswith("at t.py:9")


class TestRenderSummary:
    """Tests for the console summary table."""

    def test_lists_every_outcome(self):
        console = Console(record=True, width=160)
        outcomes = [
            SessionOutcome(name="login/01_form", verdict=_different()),
            SessionOutcome(name="home", verdict=Verdict(status=VerdictStatus.IDENTICAL, name="home")),
            SessionOutcome(name="broken", error="nope", error_type="CaptureFailure"),
        ]
        render_summary(outcomes, console)
        text = console.export_text()

        assert "Screenshot Comparison" in text
        assert "login/01_form" in text
        assert "different" in text
        assert "identical" in text
        assert "CaptureFailure" in text


class TestWriteJsonReport:
    """Tests for write_json_report."""

    def test_report_contents(self, tmp_path: Path):
        outcomes = [
            SessionOutcome(name="login/01_form", verdict=_different()),
            SessionOutcome(name="home", verdict=Verdict(status=VerdictStatus.IDENTICAL, name="home")),
            SessionOutcome(name="broken", error="nope", error_type="CaptureFailure"),
        ]
        output_file = tmp_path / "reports" / "screenshots.json"
        write_json_report(outcomes, output_file)

        with open(output_file) as f:
            data = json.load(f)

        assert data["total"] == 3
        assert data["failed"] == 2
        first = data["screenshots"][0]
        assert first["verdict"]["status"] == "different"
        assert first["verdict"]["diff_region"] == {"left": 10, "top": 20, "right": 14, "bottom": 24}
        assert first["verdict"]["stabilization"]["outcome"] == "stable"
        assert data["screenshots"][2]["error_type"] == "CaptureFailure"
