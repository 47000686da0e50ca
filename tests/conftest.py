"""Pytest configuration and shared fixtures.

The rendering driver is replaced by a small in-memory DOM that implements the
same surface as ``LiveNode`` and ``Session``. A "render" of that DOM is a
fingerprint computed by a test-supplied function; a session is pristine when
the fingerprint equals the one taken at construction.
"""

import io
from typing import Callable, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from PIL import Image

from disector.models.config import DisectorConfig
from disector.session.node import RollbackToken


# ============================================================================
# Fake DOM
# ============================================================================


class FakeText:
    def __init__(self, text: str):
        self.text = text
        self.parent: Optional["FakeElement"] = None

    def serialize(self, sort_attributes: bool = False) -> str:
        return self.text

    def text_content(self) -> str:
        return self.text

    async def dispose(self) -> None:
        pass


class FakeElement:
    """Stands in for ``LiveNode``; children may be elements or text."""

    def __init__(self, tag: str, attrs: Optional[dict] = None, nodes: Optional[list] = None):
        self.tag = tag
        self.attrs = dict(attrs or {})
        # attribute name -> namespace URI, for prefixed attributes such as xlink:href
        self.namespaces: dict[str, str] = {}
        self.nodes: list = []
        self.parent: Optional[FakeElement] = None
        self.is_document_root = False
        for node in nodes or []:
            self.append(node)

    def append(self, node) -> None:
        node.parent = self
        self.nodes.append(node)

    def elements(self) -> list["FakeElement"]:
        return [n for n in self.nodes if isinstance(n, FakeElement)]

    def iter(self):
        yield self
        for child in self.elements():
            yield from child.iter()

    def text_content(self) -> str:
        return "".join(n.text_content() for n in self.nodes)

    def serialize(self, sort_attributes: bool = False) -> str:
        items = sorted(self.attrs.items()) if sort_attributes else self.attrs.items()
        attrs = "".join(f' {k}="{v}"' for k, v in items)
        inner = "".join(n.serialize(sort_attributes) for n in self.nodes)
        return f"<{self.tag}{attrs}>{inner}</{self.tag}>"

    # --- LiveNode surface ---------------------------------------------------

    async def is_root(self) -> bool:
        return self.is_document_root

    async def describe(self) -> str:
        desc = self.tag.lower()
        if self.attrs.get("id"):
            desc += "#" + self.attrs["id"]
        if self.attrs.get("class", "").split():
            desc += "." + ".".join(self.attrs["class"].split())
        return desc

    async def tag_name(self) -> str:
        return self.tag.upper()

    async def children(self) -> list["FakeElement"]:
        return self.elements()

    async def attributes(self) -> list[tuple[str, str, Optional[str]]]:
        return [(k, v, self.namespaces.get(k)) for k, v in self.attrs.items()]

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    async def set_attribute(self, name: str, value: str, namespace: Optional[str] = None) -> None:
        self.attrs[name] = value
        if namespace:
            self.namespaces[name] = namespace

    async def remove_attribute(self, name: str, namespace: Optional[str] = None) -> None:
        self.attrs.pop(name, None)
        self.namespaces.pop(name, None)

    async def text(self) -> str:
        return self.text_content()

    async def detach(self) -> RollbackToken:
        parent = self.parent
        index = next(i for i, n in enumerate(parent.nodes) if n is self)
        sibling = parent.nodes[index + 1] if index + 1 < len(parent.nodes) else None
        del parent.nodes[index]
        self.parent = None
        return RollbackToken(parent, sibling)

    async def restore(self, token: RollbackToken) -> None:
        parent = token.parent
        if token.next_sibling is None:
            parent.nodes.append(self)
        else:
            index = next(i for i, n in enumerate(parent.nodes) if n is token.next_sibling)
            parent.nodes.insert(index, self)
        self.parent = parent

    async def append_style(self, css: str, marker: str = "injected") -> None:
        self.append(FakeElement("style", {marker: "true"}, [FakeText(css)]))

    async def dispose(self) -> None:
        pass


def _convert(tag: Tag) -> FakeElement:
    attrs = {
        k: " ".join(v) if isinstance(v, list) else v
        for k, v in tag.attrs.items()
    }
    element = FakeElement(tag.name, attrs)
    for child in tag.children:
        if isinstance(child, Tag):
            element.append(_convert(child))
        elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            element.append(FakeText(str(child)))
    return element


def parse_fake_dom(html: str) -> FakeElement:
    """Parse markup into a fake tree whose first element is the document root."""
    soup = BeautifulSoup(html, "html.parser")
    root = _convert(soup.find(True))
    root.is_document_root = True
    return root


class FakeSession:
    """Stands in for ``Session`` with a fake DOM and a fingerprint renderer."""

    def __init__(self, html: str, render: Callable[[FakeElement], object], device_name="Fake"):
        self.device_name = device_name
        self.render = render
        self.document = parse_fake_dom(html)
        self.pristine = render(self.document)
        self.checks: list[str] = []
        self.closed = False

    async def is_pristine(self, description: str = "") -> bool:
        self.checks.append(description)
        return self.render(self.document) == self.pristine

    async def content(self) -> str:
        return self.document.serialize()

    async def set_content(self, content: str) -> None:
        self.document = parse_fake_dom(content)

    async def root(self) -> FakeElement:
        return self.document

    async def query(self, selector: str) -> Optional[FakeElement]:
        return next((e for e in self.document.iter() if e.tag == selector), None)

    async def query_all(self, selector: str) -> list[FakeElement]:
        return [e for e in self.document.iter() if e.tag == selector]

    async def close(self) -> None:
        self.closed = True


class RecordingOracle:
    """Oracle callback that answers from a predicate over the live tree."""

    def __init__(self, root: FakeElement, accept: Callable[[FakeElement], bool]):
        self.root = root
        self.accept = accept
        self.descriptions: list[str] = []
        self.snapshots: list[str] = []

    async def __call__(self, description: str = "") -> bool:
        self.descriptions.append(description)
        self.snapshots.append(self.root.serialize())
        return self.accept(self.root)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def fake_dom() -> Callable[[str], FakeElement]:
    return parse_fake_dom


@pytest.fixture
def fake_session() -> type[FakeSession]:
    return FakeSession


@pytest.fixture
def oracle() -> type[RecordingOracle]:
    return RecordingOracle


@pytest.fixture
def element() -> type[FakeElement]:
    return FakeElement


@pytest.fixture
def text_node() -> type[FakeText]:
    return FakeText


@pytest.fixture
def log() -> Mock:
    return Mock()


@pytest.fixture
def config() -> DisectorConfig:
    """A config with fast settle delays and a single device."""
    return DisectorConfig(devices=["Desktop"], settle_ms=0, pristine_settle_ms=0)


def png_bytes(size=(4, 4), color=(255, 255, 255, 255), dots=()) -> bytes:
    img = Image.new("RGBA", size, color)
    for dot in dots:
        img.putpixel(dot, (0, 0, 0, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_png() -> Callable[..., bytes]:
    return png_bytes


@pytest.fixture
def mock_page():
    """An AsyncMock Playwright page whose screenshots are white 4x4 PNGs."""
    page = AsyncMock()
    page.screenshot = AsyncMock(return_value=png_bytes())
    page.content = AsyncMock(return_value="<html><head></head><body></body></html>")
    return page


@pytest.fixture
def mock_browser(mock_page):
    browser = AsyncMock()
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    browser.new_context = AsyncMock(return_value=context)
    return browser
