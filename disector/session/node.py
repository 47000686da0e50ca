"""Live element handles inside one session's document."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import ElementHandle, JSHandle

_DESCRIBE_JS = """n => {
    let desc = n.tagName.toLowerCase();
    if (n.id) desc += '#' + n.id;
    const cls = n.getAttribute('class');
    if (cls && cls.trim()) desc += '.' + cls.trim().split(/\\s+/).join('.');
    return desc;
}"""

_ATTRIBUTES_JS = "n => Array.from(n.attributes, a => [a.name, a.value, a.namespaceURI])"


class RollbackToken:
    """Where a detached node lived: its parent and the sibling that followed it.

    ``next_sibling`` is None when the node was the last child.
    """

    def __init__(self, parent: JSHandle, next_sibling: Optional[JSHandle] = None):
        self.parent = parent
        self.next_sibling = next_sibling

    async def release(self) -> None:
        await self.parent.dispose()
        if self.next_sibling is not None:
            await self.next_sibling.dispose()


class LiveNode:
    """An element of a live document, addressed through the rendering driver.

    Handles are only meaningful inside the session that produced them.
    """

    def __init__(self, handle: ElementHandle):
        self.handle = handle

    async def is_root(self) -> bool:
        return await self.handle.evaluate("n => n.parentNode === n.ownerDocument")

    async def describe(self) -> str:
        return await self.handle.evaluate(_DESCRIBE_JS)

    async def tag_name(self) -> str:
        return await self.handle.evaluate("n => n.tagName")

    async def children(self) -> list["LiveNode"]:
        """Direct element children, queried from the live tree on every call."""
        return [LiveNode(h) for h in await self.handle.query_selector_all(":scope > *")]

    async def attributes(self) -> list[tuple[str, str, Optional[str]]]:
        """(qualified name, value, namespace URI) for each attribute, in document order."""
        items = await self.handle.evaluate(_ATTRIBUTES_JS)
        return [(name, value, namespace) for name, value, namespace in items]

    async def get_attribute(self, name: str) -> Optional[str]:
        return await self.handle.get_attribute(name)

    async def set_attribute(self, name: str, value: str, namespace: Optional[str] = None) -> None:
        if namespace:
            await self.handle.evaluate(
                "(n, [ns, k, v]) => n.setAttributeNS(ns, k, v)", [namespace, name, value]
            )
        else:
            await self.handle.evaluate("(n, [k, v]) => n.setAttribute(k, v)", [name, value])

    async def remove_attribute(self, name: str, namespace: Optional[str] = None) -> None:
        if namespace:
            # removeAttributeNS takes the local name, not the prefixed one
            await self.handle.evaluate(
                "(n, [ns, k]) => n.removeAttributeNS(ns, k.slice(k.indexOf(':') + 1))",
                [namespace, name],
            )
        else:
            await self.handle.evaluate("(n, k) => n.removeAttribute(k)", name)

    async def text(self) -> str:
        return await self.handle.evaluate("n => n.textContent") or ""

    async def detach(self) -> RollbackToken:
        """Remove the node from its parent, returning what is needed to put it back."""
        parent = await self.handle.evaluate_handle("n => n.parentNode")
        is_last = await self.handle.evaluate("n => n.nextSibling === null")
        sibling = None if is_last else await self.handle.evaluate_handle("n => n.nextSibling")
        await self.handle.evaluate("n => n.parentNode.removeChild(n)")
        return RollbackToken(parent, sibling)

    async def restore(self, token: RollbackToken) -> None:
        """Reinsert a detached node exactly where it was."""
        if token.next_sibling is None:
            await token.parent.evaluate("(p, n) => p.appendChild(n)", self.handle)
        else:
            await token.parent.evaluate(
                "(p, [n, s]) => p.insertBefore(n, s)", [self.handle, token.next_sibling]
            )

    async def dispose(self) -> None:
        await self.handle.dispose()

    async def append_style(self, css: str, marker: str = "injected") -> None:
        """Append a ``<style>`` element carrying ``css`` as a child of this node."""
        await self.handle.evaluate(
            """(h, [css, marker]) => {
                const ss = h.ownerDocument.createElement('style');
                ss.setAttribute(marker, 'true');
                ss.textContent = css;
                h.appendChild(ss);
            }""",
            [css, marker],
        )
