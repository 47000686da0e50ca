"""Diagnostic dumps: baselines, per-render snapshots and diff images."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from PIL import Image

from disector.models.report import DiffReport

logger = logging.getLogger(__name__)


def _slug(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "-", name).strip("-").lower() or "device"


class DumpWriter:
    """Writes diagnostic images and markup. Nothing here affects the reduction."""

    def __init__(self, dump_dir: Path, renders: bool = False, diffs: bool = True):
        self.dump_dir = dump_dir
        self.dump_dir.mkdir(parents=True, exist_ok=True)
        self.renders = renders
        self.diffs = diffs
        self._render_count = 0
        self._diff_count = 0

    def write_baseline(self, device_name: str, image: Image.Image) -> str:
        path = self.dump_dir / f"pristine-{_slug(device_name)}.png"
        image.save(path)
        logger.debug("Baseline written: %s", path)
        return str(path)

    def write_render(self, device_name: str, image: Image.Image, html: str) -> str:
        """Save one render and the markup that produced it."""
        self._render_count += 1
        stem = f"snap-{self._render_count}-{_slug(device_name)}"
        image.save(self.dump_dir / f"{stem}.png")
        with open(self.dump_dir / f"{stem}.html", "w", encoding="utf-8") as f:
            f.write(html)
        return str(self.dump_dir / f"{stem}.png")

    def write_diff(self, report: DiffReport) -> str:
        """Save the diff image of a failed check (or the screenshot on a size mismatch)."""
        if report.passed or not self.diffs:
            return ""
        image = report.diff if report.diff is not None else report.screenshot
        if image is None:
            return ""
        self._diff_count += 1
        suffix = "" if report.same_size else "-badsize"
        path = self.dump_dir / f"diff-{self._diff_count}{suffix}.png"
        image.save(path)
        report.diff_path = str(path)
        return str(path)
