"""Remove individual class tokens."""

from __future__ import annotations

from disector.models.report import PhaseStats
from disector.session.node import LiveNode

from .base import Phase


class ClassRemover(Phase):
    name = "class"

    async def process(self, root: LiveNode) -> PhaseStats:
        stats = PhaseStats(phase=self.name)
        await self._visit(root, stats)
        return stats

    async def _visit(self, node: LiveNode, stats: PhaseStats) -> None:
        class_attribute = await node.get_attribute("class")

        if class_attribute:
            classes = class_attribute.split()
            for candidate in list(classes):
                if candidate not in classes:
                    continue
                self.log("checking class: %s", candidate)
                stats.tested += 1

                without = [c for c in classes if c != candidate]
                await node.set_attribute("class", " ".join(without))
                if await self.pristine(f"rm class {candidate}"):
                    self.log("  removed")
                    stats.removed += 1
                    classes = without
                else:
                    await node.set_attribute("class", " ".join(classes))

        for child in await node.children():
            await self._visit(child, stats)
            await child.dispose()
