"""Emulated device profiles and the registry they are resolved from."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from disector.errors import UnknownDeviceError


class Viewport(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class DeviceProfile(BaseModel):
    """An immutable description of one emulated device."""

    model_config = ConfigDict(frozen=True)

    name: str
    viewport: Viewport
    device_scale_factor: float = 1
    is_mobile: bool = False
    has_touch: bool = False
    user_agent: Optional[str] = None

    @classmethod
    def from_descriptor(cls, name: str, descriptor: Mapping[str, Any]) -> "DeviceProfile":
        """Build a profile from a Playwright device descriptor."""
        viewport = descriptor.get("viewport") or {"width": 1280, "height": 720}
        return cls(
            name=name,
            viewport=Viewport(width=viewport["width"], height=viewport["height"]),
            device_scale_factor=descriptor.get("device_scale_factor", 1),
            is_mobile=descriptor.get("is_mobile", False),
            has_touch=descriptor.get("has_touch", False),
            user_agent=descriptor.get("user_agent"),
        )

    def context_options(self) -> dict:
        """Keyword arguments for ``Browser.new_context``."""
        options: dict = {
            "viewport": self.viewport.model_dump(),
            "device_scale_factor": self.device_scale_factor,
            "is_mobile": self.is_mobile,
            "has_touch": self.has_touch,
        }
        if self.user_agent:
            options["user_agent"] = self.user_agent
        return options


BUILTIN_DEVICES: dict[str, DeviceProfile] = {
    "Desktop": DeviceProfile(
        name="Desktop",
        viewport=Viewport(width=1200, height=1024),
        device_scale_factor=2,
    ),
    "iPad Pro landscape": DeviceProfile(
        name="iPad Pro landscape",
        viewport=Viewport(width=1366, height=1024),
        device_scale_factor=2,
        is_mobile=True,
        has_touch=True,
        user_agent=(
            "Mozilla/5.0 (iPad; CPU OS 11_0 like Mac OS X) "
            "AppleWebKit/604.1.34 (KHTML, like Gecko) "
            "Version/11.0 Mobile/15A5341f Safari/604.1"
        ),
    ),
}


class DeviceRegistry(BaseModel):
    """Built-in profiles layered over Playwright's device descriptors."""

    builtin: dict[str, DeviceProfile] = Field(default_factory=lambda: dict(BUILTIN_DEVICES))
    descriptors: dict[str, dict] = Field(default_factory=dict)

    def names(self, include_descriptors: bool = True) -> list[str]:
        names = list(self.builtin)
        if include_descriptors:
            names.extend(n for n in sorted(self.descriptors) if n not in self.builtin)
        return names

    def resolve(self, name: str) -> DeviceProfile:
        if name in self.builtin:
            return self.builtin[name]
        if name in self.descriptors:
            return DeviceProfile.from_descriptor(name, self.descriptors[name])
        raise UnknownDeviceError(name)
