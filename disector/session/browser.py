"""Browser launch and per-device context creation."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from disector.models.config import DETERMINISM_ARGS
from disector.models.device import DeviceProfile


async def launch_browser(
    playwright: Playwright,
    headless: bool = True,
    args: Optional[list[str]] = None,
) -> Browser:
    """Launch Chromium with flags that keep repeated renders deterministic."""
    return await playwright.chromium.launch(
        headless=headless,
        args=list(DETERMINISM_ARGS if args is None else args),
    )


async def create_device_context(browser: Browser, profile: DeviceProfile) -> BrowserContext:
    """Create a browser context emulating the given device."""
    return await browser.new_context(**profile.context_options())


async def load_device_descriptors() -> dict[str, dict]:
    """Playwright's table of emulated device descriptors."""
    async with async_playwright() as p:
        return dict(p.devices)
