"""Reduction orchestrator: device sessions, the cross-device oracle and the phase pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, async_playwright

from disector.models.config import DisectorConfig
from disector.models.device import DeviceRegistry
from disector.models.report import DiffReport, PhaseStats, ReductionResult, ReductionStats
from disector.phases.base import Phase, PhaseContext
from disector.phases.registry import PHASE_ORDER, PHASES
from disector.reporting.dump import DumpWriter
from disector.session.browser import launch_browser
from disector.session.session import Session

logger = logging.getLogger(__name__)


class Orchestrator:
    """Reduces one document against a set of device sessions.

    The first configured device is the primary session: every phase mutates
    its live document. The others are auxiliaries, only ever loaded with the
    primary's content to confirm a mutation.
    """

    def __init__(self, source: str, config: DisectorConfig, name: str = ""):
        self.source = source
        self.config = config
        self.name = name
        self.sessions: list[Session] = []
        self.stats = ReductionStats(input_size=len(source))

        self.dump: Optional[DumpWriter] = None
        if config.dump_dir:
            self.dump = DumpWriter(
                Path(config.dump_dir),
                renders=config.dump_renders,
                diffs=config.dump_diffs,
            )

    def run(self) -> ReductionResult:
        """Run the whole reduction and return the final document."""
        return asyncio.run(self._run())

    async def _run(self) -> ReductionResult:
        async with async_playwright() as p:
            registry = DeviceRegistry(descriptors=dict(p.devices))
            browser = await launch_browser(
                p, headless=self.config.headless, args=self.config.browser_args
            )
            try:
                return await self.process(browser, registry)
            finally:
                try:
                    await self.close()
                finally:
                    await browser.close()

    @property
    def primary_session(self) -> Session:
        return self.sessions[0]

    @property
    def aux_sessions(self) -> list[Session]:
        return self.sessions[1:]

    async def close(self) -> None:
        """Close every session, then raise the first failure if any."""
        results = await asyncio.gather(
            *(session.close() for session in self.sessions), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                raise result

    async def open_sessions(self, browser: Browser, registry: DeviceRegistry) -> None:
        """Create every session, load the source and capture baselines, concurrently."""
        profiles = [registry.resolve(name) for name in self.config.devices]
        self.sessions = [
            Session(
                profile,
                browser,
                settle_ms=self.config.settle_ms,
                pristine_settle_ms=self.config.pristine_settle_ms,
                dump=self.dump,
            )
            for profile in profiles
        ]

        async def _open(session: Session) -> None:
            session.set_diff_report(self.diff_report)
            await session.initialize(self.source)
            await session.capture_pristine()
            logger.info("Baseline captured for %s (%dx%d)",
                        session.device_name, *session.pristine.size)

        results = await asyncio.gather(
            *(_open(s) for s in self.sessions), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result

    def diff_report(self, report: DiffReport) -> None:
        self.stats.renders += 1
        msg = " ✅  " if report.passed else " 🛑  "
        if self.name:
            msg += f"{self.name} "
        msg += f"{report.device_name[:20]:<20}: {report.description}"

        if not report.passed:
            self.stats.failed_checks += 1
            msg += f" ({report.summary()})"
            if self.dump is not None:
                path = self.dump.write_diff(report)
                if path:
                    msg += f" → {path}"

        logger.info(msg)

    async def is_pristine(self, description: str = "") -> bool:
        """Cross-device oracle.

        The primary is checked first; auxiliaries are only touched when it
        passes. They are synced to the primary one by one, then checked
        together.
        """
        if not await self.primary_session.is_pristine(description):
            return False

        if not self.aux_sessions:
            return True

        source = await self.primary_session.content()
        for session in self.aux_sessions:
            await session.set_content(source)

        results = await asyncio.gather(
            *(s.is_pristine(description) for s in self.aux_sessions)
        )
        return all(results)

    def _phase_log(self, phase: str, msg: str, *args) -> None:
        logger.debug("%s: " + msg, phase, *args)

    def build_phase(self, name: str) -> Optional[Phase]:
        phase_class = PHASES.get(name)
        if phase_class is None:
            return None

        context = PhaseContext(
            log=lambda msg, *args: self._phase_log(name, msg, *args),
            pristine=self.is_pristine,
        )
        if name == "attr":
            return phase_class(context, denylist=self.config.attribute_denylist)
        if name == "css":
            return phase_class(context, options=self.config.css)
        if name == "html":
            return phase_class(context, options=self.config.html)
        return phase_class(context)

    def enabled_phases(self) -> list[str]:
        """Enabled phase names in canonical order. Unknown names are skipped."""
        requested = self.config.phases
        for name in requested:
            if name not in PHASES:
                logger.warning("Skipping unknown phase: %s", name)
        return [name for name in PHASE_ORDER if name in requested]

    async def start_phase(self, name: str) -> PhaseStats:
        phase = self.build_phase(name)
        logger.info(" == starting phase: %s ==", name)
        start = time.time()

        session = self.primary_session
        if phase.scope == "document":
            stats = await phase.process(session)
        else:
            root = await session.root()
            try:
                stats = await phase.process(root)
            finally:
                await root.dispose()

        size = len(await session.content())
        self.stats.phase_sizes[name] = size
        self.stats.phases.append(stats)
        logger.info(" == phase %s done in %.1fs: %d tested, %d removed, %d bytes ==",
                    name, time.time() - start, stats.tested, stats.removed, size)

        # Every committed mutation was already verified; a failure here means
        # the renders are not deterministic. Logged only.
        if not await self.is_pristine(f"phase exit check ({name})"):
            logger.warning("Phase %s exit check failed: renders may be nondeterministic", name)
        return stats

    async def process(self, browser: Browser, registry: DeviceRegistry) -> ReductionResult:
        logger.info("=== Reducing %d bytes on %d device(s): %s ===",
                    len(self.source), len(self.config.devices), ", ".join(self.config.devices))
        await self.open_sessions(browser, registry)

        for name in self.enabled_phases():
            await self.start_phase(name)

        document = await self.primary_session.content()
        pristine = await self.is_pristine("final check")
        logger.info(" == Final pristine check == %s", pristine)

        self.stats.final_size = len(document)
        self.stats.pristine = pristine
        return ReductionResult(document=document, pristine=pristine, stats=self.stats)
