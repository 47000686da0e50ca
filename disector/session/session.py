"""Device session: one emulated-device rendering context with its own baseline."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from disector.errors import BaselineError
from disector.models.device import DeviceProfile
from disector.models.report import DiffReport
from disector.reporting.dump import DumpWriter

from .browser import create_device_context
from .imaging import compare_images, decode_png
from .node import LiveNode

logger = logging.getLogger(__name__)

# Two frames at 60fps
DEFAULT_SETTLE_MS = 32
# Long enough for "appear" animations to finish before the baseline is taken
DEFAULT_PRISTINE_SETTLE_MS = 500


class Session:
    """Owns a browser context emulating one device, and that device's baseline."""

    def __init__(
        self,
        profile: DeviceProfile,
        browser: Browser,
        settle_ms: int = DEFAULT_SETTLE_MS,
        pristine_settle_ms: int = DEFAULT_PRISTINE_SETTLE_MS,
        dump: Optional[DumpWriter] = None,
    ):
        self.profile = profile
        self.browser = browser
        self.settle_ms = settle_ms
        self.pristine_settle_ms = pristine_settle_ms
        self.dump = dump

        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.pristine: Optional[Image.Image] = None
        self.diff_report: Callable[[DiffReport], None] = lambda report: None

    @property
    def device_name(self) -> str:
        return self.profile.name

    def set_diff_report(self, callback: Callable[[DiffReport], None]) -> None:
        self.diff_report = callback

    async def initialize(self, content: Optional[str] = None) -> None:
        """Open the device context and optionally load ``content`` into it."""
        logger.debug("Opening session for %s", self.device_name)
        self.context = await create_device_context(self.browser, self.profile)
        self.page = await self.context.new_page()
        if content is not None:
            await self.set_content(content)

    async def close(self) -> None:
        if self.context is not None:
            logger.debug("Closing session for %s", self.device_name)
            await self.context.close()
        self.context = None
        self.page = None

    async def settle(self, timeout_ms: Optional[int] = None) -> None:
        """Wait out layout and animation jitter before measuring anything."""
        await self.page.wait_for_timeout(self.settle_ms if timeout_ms is None else timeout_ms)
        await self.page.evaluate("() => new Promise(r => window.setTimeout(r, 32))")
        await self.page.evaluate("() => new Promise(r => window.requestAnimationFrame(r))")

    async def content(self) -> str:
        return await self.page.content()

    async def set_content(self, content: str) -> None:
        await self.page.set_content(content, wait_until="load")
        await self.settle()

    async def root(self) -> LiveNode:
        handle = await self.page.query_selector(":root")
        return LiveNode(handle)

    async def query(self, selector: str) -> Optional[LiveNode]:
        handle = await self.page.query_selector(selector)
        return LiveNode(handle) if handle is not None else None

    async def query_all(self, selector: str) -> list[LiveNode]:
        return [LiveNode(h) for h in await self.page.query_selector_all(selector)]

    async def capture_screenshot(self, settle_ms: Optional[int] = None) -> Image.Image:
        await self.settle(settle_ms)
        data = await self.page.screenshot(full_page=True)
        image = decode_png(data)
        if self.dump is not None and self.dump.renders:
            self.dump.write_render(self.device_name, image, await self.content())
        return image

    async def capture_pristine(self) -> Image.Image:
        """Capture the baseline. Allowed exactly once, before any mutation."""
        if self.pristine is not None:
            raise BaselineError(f"Baseline already captured for {self.device_name}")
        self.pristine = await self.capture_screenshot(self.pristine_settle_ms)
        logger.debug("Baseline for %s: %dx%d", self.device_name, *self.pristine.size)
        if self.dump is not None:
            self.dump.write_baseline(self.device_name, self.pristine)
        return self.pristine

    async def is_pristine(self, description: str = "") -> bool:
        """Does the current render match the baseline exactly?"""
        if self.pristine is None:
            raise BaselineError(f"No baseline captured for {self.device_name}")

        screenshot = await self.capture_screenshot()
        comparison = compare_images(self.pristine, screenshot)

        self.diff_report(DiffReport(
            device_name=self.device_name,
            description=description,
            passed=comparison.identical,
            same_size=comparison.same_size,
            pixel_diff=comparison.pixel_diff,
            baseline_size=self.pristine.size,
            current_size=screenshot.size,
            baseline=self.pristine,
            screenshot=screenshot,
            diff=comparison.diff,
        ))
        return comparison.identical
