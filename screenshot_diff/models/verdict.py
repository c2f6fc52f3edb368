"""Comparison verdict data structures."""

from __future__ import annotations

from decimal import ROUND_CEILING, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class VerdictStatus(str, Enum):
    NO_BASELINE = "no_baseline"
    IDENTICAL = "identical"
    DIFFERENT = "different"


class StabilizationOutcome(str, Enum):
    STABLE = "stable"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"  # single capture, nothing to compare against


class DiffRegion(BaseModel):
    """Inclusive bounding box of the differing pixels."""
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def as_list(self) -> list[int]:
        return [self.left, self.top, self.right, self.bottom]


class StabilizationReport(BaseModel):
    outcome: StabilizationOutcome = StabilizationOutcome.SKIPPED
    attempts: int = 0
    matched_reference: bool = False
    leftover_images: list[str] = Field(default_factory=list)

    @property
    def is_best_effort(self) -> bool:
        return self.outcome in (StabilizationOutcome.EXHAUSTED, StabilizationOutcome.CANCELLED)


class Verdict(BaseModel):
    status: VerdictStatus
    name: str = ""
    max_color_distance: float = 0.0
    diff_area: int = 0
    diff_region: Optional[DiffRegion] = None
    baseline_size: Optional[tuple[int, int]] = None
    current_size: Optional[tuple[int, int]] = None
    dimension_mismatch: bool = False
    diff_image_path: Optional[str] = None
    capture_path: Optional[str] = None
    stabilization: StabilizationReport = Field(default_factory=StabilizationReport)

    @property
    def is_different(self) -> bool:
        return self.status == VerdictStatus.DIFFERENT

    @property
    def rounded_max_color_distance(self) -> float:
        """Max color distance rounded up to one decimal place."""
        value = Decimal(repr(self.max_color_distance))
        return float(value.quantize(Decimal("0.1"), rounding=ROUND_CEILING))


class SessionOutcome(BaseModel):
    """Result of one identity in a batch: a verdict or the error that stopped it."""
    name: str
    verdict: Optional[Verdict] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    caller: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None or (self.verdict is not None and self.verdict.is_different)
