"""Remove attributes that don't contribute to the rendered result."""

from __future__ import annotations

from typing import Iterable, Optional

from disector.models.config import AttributeDenylistEntry
from disector.models.report import PhaseStats
from disector.session.node import LiveNode

from .base import Phase, PhaseContext

DEFAULT_DENYLIST = (
    AttributeDenylistEntry(tag="svg", attribute="width"),
    AttributeDenylistEntry(tag="svg", attribute="height"),
)


class AttributeRemover(Phase):
    name = "attr"

    def __init__(
        self,
        context: PhaseContext,
        denylist: Optional[Iterable[AttributeDenylistEntry]] = None,
    ):
        super().__init__(context)
        self.denylist = tuple(DEFAULT_DENYLIST if denylist is None else denylist)

    def is_denylisted(self, tag_name: str, attribute: str) -> bool:
        return any(entry.matches(tag_name, attribute) for entry in self.denylist)

    async def process(self, root: LiveNode) -> PhaseStats:
        stats = PhaseStats(phase=self.name)
        await self._visit(root, stats)
        return stats

    async def _visit(self, node: LiveNode, stats: PhaseStats) -> None:
        # Snapshot once; attributes that only matter jointly are both kept
        attributes = await node.attributes()
        tag_name = await node.tag_name()

        for name, value, namespace in attributes:
            if self.is_denylisted(tag_name, name):
                self.log("denylisted attribute: %s %s=%r", tag_name, name, value)
                continue

            stats.tested += 1
            await node.remove_attribute(name, namespace)

            self.log("checking attribute: %s=%r", name, value)
            if await self.pristine(f"rm attr {name} on <{tag_name.lower()}>"):
                self.log("  removed")
                stats.removed += 1
            else:
                await node.set_attribute(name, value or "", namespace)

        for child in await node.children():
            await self._visit(child, stats)
            await child.dispose()
