"""Diff reports and reduction statistics."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DiffReport(BaseModel):
    """Outcome of one pristine check on one device session."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    device_name: str
    description: str = ""
    passed: bool
    same_size: bool
    pixel_diff: int = 0
    baseline_size: tuple[int, int]
    current_size: tuple[int, int]

    # PIL images, kept out of serialized output
    baseline: Any = Field(default=None, exclude=True)
    screenshot: Any = Field(default=None, exclude=True)
    diff: Any = Field(default=None, exclude=True)

    # Set when the diagnostics dump writes the diff image out
    diff_path: Optional[str] = None

    def summary(self) -> str:
        if self.passed:
            return "pristine"
        if self.same_size:
            return f"{self.pixel_diff} pixels diff"
        bw, bh = self.baseline_size
        cw, ch = self.current_size
        return f"bad size, expected {bw}x{bh}, got {cw}x{ch}"


class PhaseStats(BaseModel):
    """Counters for one phase invocation."""
    phase: str
    tested: int = 0
    removed: int = 0


class ReductionStats(BaseModel):
    renders: int = 0
    failed_checks: int = 0
    input_size: int = 0
    final_size: int = 0
    phases: list[PhaseStats] = Field(default_factory=list)
    phase_sizes: dict[str, int] = Field(default_factory=dict)
    pristine: bool = False


class ReductionResult(BaseModel):
    document: str
    pristine: bool
    stats: ReductionStats = Field(default_factory=ReductionStats)
