"""Configuration models for screenshot comparison."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Thresholds(BaseModel):
    """Tolerances applied when deciding whether two images are the same."""

    color_distance_limit: float = Field(default=0.0, ge=0)
    area_size_limit: int = Field(default=0, ge=0)
    # Per-pixel anti-aliasing tolerance: a pixel only differs above this distance
    noise_floor: float = Field(default=0.0, ge=0)

    def merged(
        self,
        color_distance_limit: float | None = None,
        area_size_limit: int | None = None,
        noise_floor: float | None = None,
    ) -> "Thresholds":
        """Return a copy with the given values overridden; ``None`` keeps the current value."""
        updates = {
            key: value
            for key, value in (
                ("color_distance_limit", color_distance_limit),
                ("area_size_limit", area_size_limit),
                ("noise_floor", noise_floor),
            )
            if value is not None
        }
        return self.model_validate({**self.model_dump(), **updates})


class ViewportConfig(BaseModel):
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)


class StabilizationConfig(BaseModel):
    max_attempts: int = Field(default=10, ge=1)
    interval_seconds: float = Field(default=0.1, ge=0)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    # None means consecutive captures must match exactly
    thresholds: Optional[Thresholds] = None


class DiffConfig(BaseModel):
    # Master switch, screenshots are skipped entirely when False
    enabled: bool = True

    # Storage
    screenshot_area: str = "doc/screenshots"
    repository_root: str = "."
    vcs: Literal["auto", "git", "svn"] = "auto"
    use_lfs: bool = False

    # Comparison
    thresholds: Thresholds = Field(default_factory=Thresholds)
    dimensions: Optional[ViewportConfig] = None
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)

    # Execution
    max_parallel_sessions: int = Field(default=3, ge=1)

    # Page preparation for browser capture sources
    blur_active_element: bool = False
    hide_caret: bool = False

    @property
    def screenshot_area_path(self) -> Path:
        """Screenshot area resolved against the repository root."""
        return Path(self.repository_root) / self.screenshot_area

    @classmethod
    def load(cls, path: str | Path) -> "DiffConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
