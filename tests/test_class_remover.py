"""Tests for the class token removal phase."""

import pytest

from disector.phases.base import PhaseContext
from disector.phases.class_remover import ClassRemover


class TestClassRemoval:

    @pytest.mark.asyncio
    async def test_keeps_only_needed_tokens(self, fake_dom, oracle, log):
        root = fake_dom('<div class="a b c"></div>')
        check = oracle(root, lambda r: "b" in r.attrs["class"].split())

        stats = await ClassRemover(PhaseContext(log, check)).process(root)

        assert root.attrs["class"] == "b"
        assert check.descriptions == ["rm class a", "rm class b", "rm class c"]
        assert stats.tested == 3
        assert stats.removed == 2

    @pytest.mark.asyncio
    async def test_candidates_tested_against_shrunken_set(self, fake_dom, oracle, log):
        root = fake_dom('<div class="a b c"></div>')
        check = oracle(root, lambda r: "b" in r.attrs["class"].split())

        await ClassRemover(PhaseContext(log, check)).process(root)

        # a accepted; b tried without a; b restored as "b c"; c tried from there
        assert check.snapshots == [
            '<div class="b c"></div>',
            '<div class="c"></div>',
            '<div class="b"></div>',
        ]

    @pytest.mark.asyncio
    async def test_rejections_restore_class_list(self, fake_dom, oracle, log):
        root = fake_dom('<div class="x y"><span class="z">t</span></div>')
        check = oracle(root, lambda r: False)

        await ClassRemover(PhaseContext(log, check)).process(root)

        assert root.serialize() == '<div class="x y"><span class="z">t</span></div>'

    @pytest.mark.asyncio
    async def test_splits_on_any_whitespace(self, element, oracle, log):
        root = element("div", {"class": "  a\n\tb  "})
        root.is_document_root = True
        check = oracle(root, lambda r: True)

        await ClassRemover(PhaseContext(log, check)).process(root)

        assert root.attrs["class"] == ""
        assert check.descriptions == ["rm class a", "rm class b"]

    @pytest.mark.asyncio
    async def test_node_without_class_recurses(self, fake_dom, oracle, log):
        root = fake_dom('<div><p><span class="q">t</span></p></div>')
        check = oracle(root, lambda r: True)

        await ClassRemover(PhaseContext(log, check)).process(root)

        assert check.descriptions == ["rm class q"]

    @pytest.mark.asyncio
    async def test_empty_class_attribute_is_noop(self, fake_dom, oracle, log):
        root = fake_dom('<div class=""></div>')
        check = oracle(root, lambda r: True)

        stats = await ClassRemover(PhaseContext(log, check)).process(root)

        assert check.descriptions == []
        assert stats.tested == 0
