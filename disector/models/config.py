"""Configuration models for disector."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_DEVICES = ["Desktop", "Galaxy Note 3", "iPad Pro landscape"]
DEFAULT_PHASES = ["node", "attr"]

# Chrome is not deterministic across renders without these
DETERMINISM_ARGS = [
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-default-apps",
    "--disable-device-discovery-notifications",
    "--disable-renderer-backgrounding",
    "--disable-translate",
    "--disable-gpu",
]


class AttributeDenylistEntry(BaseModel):
    """A (tag, attribute) pair that the attribute phase never tries to remove."""

    tag: str
    attribute: str

    def matches(self, tag: str, attribute: str) -> bool:
        return (
            self.tag.lower() == tag.lower()
            and self.attribute.lower() == attribute.lower()
        )


class CSSReductionOptions(BaseModel):
    """Options for the CSS usage reducer."""

    # @keyframes / @font-face are structural: not matched against the markup
    keep_keyframes: bool = True
    keep_font_face: bool = True
    keep_unparseable_selectors: bool = True


class HTMLCompactionOptions(BaseModel):
    """Options for the syntactic HTML compactor."""

    collapse_boolean_attributes: bool = True
    collapse_whitespace: bool = True
    decode_entities: bool = True
    remove_comments: bool = True
    remove_empty_attributes: bool = True
    remove_redundant_attributes: bool = True
    remove_optional_tags: bool = True
    sort_attributes: bool = True
    sort_class_names: bool = True
    minify_css: bool = True
    continue_on_parse_error: bool = True


class DisectorConfig(BaseModel):
    # Devices; the first one is the primary session
    devices: list[str] = Field(default_factory=lambda: list(DEFAULT_DEVICES))

    # Enabled phases; always run in the canonical order
    phases: list[str] = Field(default_factory=lambda: list(DEFAULT_PHASES))

    # Browser
    headless: bool = True
    browser_args: list[str] = Field(default_factory=lambda: list(DETERMINISM_ARGS))

    # Settle delays in milliseconds
    settle_ms: int = 32
    pristine_settle_ms: int = 500

    # Phase options
    attribute_denylist: list[AttributeDenylistEntry] = Field(
        default_factory=lambda: [
            AttributeDenylistEntry(tag="svg", attribute="width"),
            AttributeDenylistEntry(tag="svg", attribute="height"),
        ]
    )
    css: CSSReductionOptions = Field(default_factory=CSSReductionOptions)
    html: HTMLCompactionOptions = Field(default_factory=HTMLCompactionOptions)

    # Diagnostics
    dump_dir: Optional[str] = None
    dump_renders: bool = False
    dump_diffs: bool = False

    @field_validator("devices")
    @classmethod
    def require_devices(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one device is required")
        return v

    @field_validator("phases", mode="before")
    @classmethod
    def normalize_phases(cls, v):
        if isinstance(v, str):
            v = [v]
        return [str(p).strip().lower() for p in v]

    @classmethod
    def load(cls, path: str | Path) -> "DisectorConfig":
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
