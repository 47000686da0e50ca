"""Replace every inline stylesheet with one reduced stylesheet."""

from __future__ import annotations

from typing import Optional

from disector.collaborators.css_reducer import reduce_css
from disector.models.config import CSSReductionOptions
from disector.models.report import PhaseStats
from disector.session.session import Session

from .base import Phase, PhaseContext


class CSSRemover(Phase):
    """Rule-level minimality is left to the reducer; no oracle calls per rule."""

    name = "css"
    scope = "document"

    def __init__(self, context: PhaseContext, options: Optional[CSSReductionOptions] = None):
        super().__init__(context)
        self.options = options or CSSReductionOptions()

    async def process(self, session: Session) -> PhaseStats:
        stats = PhaseStats(phase=self.name)
        source = await session.content()

        buffer = ""
        stylesheets = await session.query_all("style")
        for stylesheet in stylesheets:
            buffer += await stylesheet.text() + "\n"
            token = await stylesheet.detach()
            await token.release()
            await stylesheet.dispose()
        self.log("collected %d stylesheet(s), %d bytes", len(stylesheets), len(buffer))

        reduction = reduce_css(source, buffer, self.options)
        stats.tested = reduction.rules_in
        stats.removed = reduction.rules_in - reduction.rules_out

        target = await session.query("head") or await session.root()
        await target.append_style(reduction.css)
        await target.dispose()
        self.log("injected stylesheet: %d bytes, %d/%d rules kept",
                 len(reduction.css), reduction.rules_out, reduction.rules_in)

        if len(await session.content()) > len(source):
            self.log("reduced stylesheet grew the document, restoring it")
            await session.set_content(source)
            stats.removed = 0
        return stats
