"""Syntactic compaction of the whole document."""

from __future__ import annotations

from typing import Optional

from disector.collaborators.html_compactor import compact_html
from disector.models.config import HTMLCompactionOptions
from disector.models.report import PhaseStats
from disector.session.session import Session

from .base import Phase, PhaseContext


class HTMLMinifier(Phase):
    name = "html"
    scope = "document"

    def __init__(self, context: PhaseContext, options: Optional[HTMLCompactionOptions] = None):
        super().__init__(context)
        self.options = options or HTMLCompactionOptions()

    async def process(self, session: Session) -> PhaseStats:
        source = await session.content()
        processed = compact_html(source, self.options)
        self.log("compacted %d -> %d bytes", len(source), len(processed))
        if len(processed) > len(source):
            self.log("compaction grew the document, keeping it as is")
            return PhaseStats(phase=self.name)
        await session.set_content(processed)
        return PhaseStats(phase=self.name)
