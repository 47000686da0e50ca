"""Syntactic HTML compaction.

Two passes: a BeautifulSoup canonicalisation pass (attribute cleanup and
ordering, comments, boolean attributes, entity decoding) followed by
minify-html for whitespace, optional tags and inline CSS.
"""

from __future__ import annotations

import logging
from typing import Optional

import minify_html
from bs4 import BeautifulSoup, Comment

from disector.models.config import HTMLCompactionOptions

logger = logging.getLogger(__name__)

BOOLEAN_ATTRIBUTES = frozenset({
    "allowfullscreen", "async", "autofocus", "autoplay", "checked", "controls",
    "default", "defer", "disabled", "formnovalidate", "hidden", "inert",
    "ismap", "itemscope", "loop", "multiple", "muted", "nomodule",
    "novalidate", "open", "playsinline", "readonly", "required", "reversed",
    "selected",
})

# Attributes that mean nothing when empty
EMPTY_REMOVABLE = frozenset({"class", "id", "style", "title", "lang", "dir"})

# (tag, attribute) -> values equal to the default
REDUNDANT_VALUES = {
    ("script", "type"): {"text/javascript", "application/javascript"},
    ("script", "language"): {"javascript"},
    ("style", "type"): {"text/css"},
    ("link", "type"): {"text/css"},
    ("form", "method"): {"get"},
    ("input", "type"): {"text"},
}


def _value_text(value) -> str:
    return " ".join(value) if isinstance(value, list) else str(value)


def _is_empty_removable(name: str, value) -> bool:
    return (name in EMPTY_REMOVABLE or name.startswith("on")) and not _value_text(value).strip()


def _is_redundant(tag_name: str, name: str, value) -> bool:
    defaults = REDUNDANT_VALUES.get((tag_name, name))
    return bool(defaults) and _value_text(value).strip().lower() in defaults


def canonicalize(html: str, options: HTMLCompactionOptions) -> str:
    soup = BeautifulSoup(html, "html.parser")

    if options.remove_comments:
        for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
            comment.extract()

    for tag in soup.find_all(True):
        attrs = {}
        for name, value in tag.attrs.items():
            if options.remove_empty_attributes and _is_empty_removable(name, value):
                continue
            if options.remove_redundant_attributes and _is_redundant(tag.name, name, value):
                continue
            if options.collapse_boolean_attributes and name in BOOLEAN_ATTRIBUTES:
                value = ""
            if options.sort_class_names and name == "class" and isinstance(value, list):
                value = sorted(value)
            attrs[name] = value
        if options.sort_attributes:
            attrs = dict(sorted(attrs.items()))
        tag.attrs = attrs

    return soup.decode(formatter="minimal" if options.decode_entities else "html")


def compact_html(html: str, options: Optional[HTMLCompactionOptions] = None) -> str:
    """Return a syntactically smaller document that should render identically."""
    options = options or HTMLCompactionOptions()
    canonical = canonicalize(html, options)

    if not options.collapse_whitespace:
        return canonical

    try:
        return minify_html.minify(
            canonical,
            minify_css=options.minify_css,
            minify_js=False,
            keep_comments=not options.remove_comments,
            keep_closing_tags=not options.remove_optional_tags,
            keep_html_and_head_opening_tags=not options.remove_optional_tags,
            remove_processing_instructions=True,
        )
    except Exception as e:
        if not options.continue_on_parse_error:
            raise
        logger.warning("HTML minification failed, keeping canonical markup: %s", e)
        return canonical
