"""Remove whole elements that do not contribute to the render."""

from __future__ import annotations

from disector.models.report import PhaseStats
from disector.session.node import LiveNode

from .base import Phase


class NodeRemover(Phase):
    name = "node"

    async def process(self, root: LiveNode) -> PhaseStats:
        stats = PhaseStats(phase=self.name)
        await self._visit(root, stats)
        return stats

    async def _visit(self, node: LiveNode, stats: PhaseStats) -> None:
        removed = False

        # can't remove the root element
        if not await node.is_root():
            description = await node.describe()
            self.log("checking element: <%s>", description)
            stats.tested += 1

            token = await node.detach()
            if await self.pristine(f"rm node <{description}>"):
                self.log("  removed")
                stats.removed += 1
                removed = True
            else:
                await node.restore(token)
            await token.release()

        if not removed:
            # re-queried every time: earlier removals change the child list
            for child in await node.children():
                await self._visit(child, stats)
                await child.dispose()
