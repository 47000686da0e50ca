"""CSS usage reduction: drop rules whose selectors match nothing in the markup."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Iterator, Optional

import cssutils
from bs4 import BeautifulSoup
from cssutils.serialize import CSSSerializer, Preferences
from soupsieve import SelectorSyntaxError

from disector.models.config import CSSReductionOptions

logger = logging.getLogger(__name__)

_KEYFRAMES_RE = re.compile(r"^\s*@(?:-[a-z]+-)?keyframes\s+([-\w]+)", re.IGNORECASE)
_IDENT_RE = re.compile(r"[-\w]+")

# Pseudo-elements that may be written with a single colon
LEGACY_PSEUDO_ELEMENTS = frozenset({
    "after", "backdrop", "before", "first-letter", "first-line", "marker",
    "placeholder", "selection",
})

# Pseudo-classes that depend on user interaction or playback, not on the markup
STATE_PSEUDO_CLASSES = frozenset({
    "active", "autofill", "current", "focus", "focus-visible", "focus-within",
    "future", "hover", "past", "paused", "playing", "target", "target-within",
    "user-invalid", "user-valid", "visited",
})


class CSSReduction:
    def __init__(self, css: str, rules_in: int, rules_out: int):
        self.css = css
        self.rules_in = rules_in
        self.rules_out = rules_out


def _scan(text: str) -> Iterator[tuple[int, str]]:
    """Yield (index, char) for every character outside strings and escapes."""
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c in "\"'":
            i += 1
            while i < n and text[i] != c:
                i += 2 if text[i] == "\\" else 1
            i += 1
            continue
        yield i, c
        i += 1


def _closing_paren(text: str, start: int) -> int:
    """Index just past the parenthesis matching the one at ``start``."""
    depth = 0
    for i, c in _scan(text[start:]):
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return start + i + 1
    return len(text)


def strip_state_pseudos(selector: str) -> str:
    """Remove pseudo-elements and interaction pseudo-classes from a selector.

    Only the top level is touched: brackets, strings, escapes and the
    arguments of functional pseudo-classes are left alone, so
    ``a[href="tel:1"]``, ``.md\\:flex`` and ``:not(:hover)`` survive intact.
    """
    out = []
    last = 0
    skip_to = 0
    depth = 0
    for i, c in _scan(selector):
        if i < skip_to:
            continue
        if c in "([":
            depth += 1
        elif c in ")]":
            depth -= 1
        elif c == ":" and depth == 0:
            double = selector.startswith("::", i)
            name_start = i + 2 if double else i + 1
            match = _IDENT_RE.match(selector, name_start)
            if not match:
                continue
            name = match.group(0).lower()
            end = match.end()
            if selector.startswith("(", end):
                end = _closing_paren(selector, end)
            if double or name.startswith("-") or name in LEGACY_PSEUDO_ELEMENTS \
                    or name in STATE_PSEUDO_CLASSES:
                out.append(selector[last:i])
                last = end
            skip_to = end
    out.append(selector[last:])
    return "".join(out)


def split_selectors(prelude: str) -> list[str]:
    """Split a selector list on its top-level commas."""
    parts = []
    start = 0
    depth = 0
    for i, c in _scan(prelude):
        if c in "([":
            depth += 1
        elif c in ")]":
            depth -= 1
        elif c == "," and depth == 0:
            parts.append(prelude[start:i])
            start = i + 1
    parts.append(prelude[start:])
    return [p.strip() for p in parts if p.strip()]


def strip_comments(text: str) -> str:
    out = []
    i, n = 0, len(text)
    while i < n:
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        c = text[i]
        if c == "\\":
            out.append(text[i:i + 2])
            i += 2
        elif c in "\"'":
            j = i + 1
            while j < n and text[j] != c:
                j += 2 if text[j] == "\\" else 1
            out.append(text[i:j + 1])
            i = j + 1
        else:
            out.append(c)
            i += 1
    return "".join(out)


def split_statements(text: str) -> list[str]:
    """Split comment-free CSS into top-level statements (rules and at-rules)."""
    statements = []
    start = 0
    depth = 0
    for i, c in _scan(text):
        if c == "{":
            depth += 1
        elif c == "}":
            depth = max(depth - 1, 0)
            if depth == 0:
                statements.append(text[start:i + 1])
                start = i + 1
        elif c == ";" and depth == 0:
            statements.append(text[start:i + 1])
            start = i + 1
    statements.append(text[start:])
    return [s.strip() for s in statements if s.strip()]


class SelectorMatcher:
    """Answers "does this selector match anything in the corpus?", with caching."""

    def __init__(self, markup: str, keep_unparseable: bool = True):
        self.soup = BeautifulSoup(markup, "html.parser")
        self.keep_unparseable = keep_unparseable
        self._cache: dict[str, bool] = {}

    def matches(self, selector: str) -> bool:
        if selector not in self._cache:
            self._cache[selector] = self._matches(selector)
        return self._cache[selector]

    def _select(self, selector: str) -> Optional[bool]:
        """True/False for a match, None when the selector can't be evaluated."""
        try:
            return self.soup.select_one(selector) is not None
        except (SelectorSyntaxError, NotImplementedError, ValueError) as e:
            logger.debug("Unmatchable selector %r: %s", selector, e)
            return None

    def _matches(self, selector: str) -> bool:
        found = self._select(selector)
        if found:
            return True

        stripped = strip_state_pseudos(selector).strip()
        if stripped != selector.strip():
            if not stripped:
                # e.g. "::selection"
                return True
            found = self._select(stripped)

        if found is None:
            return self.keep_unparseable
        return found


def _keyframes_name(rule) -> Optional[str]:
    match = _KEYFRAMES_RE.match(rule.cssText or "")
    return match.group(1) if match else None


def _font_family(rule) -> str:
    return rule.style.getPropertyValue("font-family").strip().strip("'\"")


def _significant(rules) -> list:
    return [r for r in rules if r.type != r.COMMENT]


class _RuleFilter:
    def __init__(self, matcher: SelectorMatcher):
        self.matcher = matcher
        self.rules_in = 0
        self.rules_out = 0

    def filter(self, container) -> None:
        """Filter the rules of a stylesheet or @media block in place."""
        doomed = []
        for index, rule in enumerate(container.cssRules):
            if rule.type == rule.STYLE_RULE:
                self.rules_in += 1
                kept = [
                    s.selectorText for s in rule.selectorList
                    if self.matcher.matches(s.selectorText)
                ]
                if kept:
                    rule.selectorText = ", ".join(kept)
                    self.rules_out += 1
                else:
                    doomed.append(index)
            elif rule.type == rule.MEDIA_RULE:
                self.filter(rule)
                if not _significant(rule.cssRules):
                    doomed.append(index)
            elif rule.type == rule.COMMENT:
                doomed.append(index)

        for index in reversed(doomed):
            container.deleteRule(index)

    def keep_raw(self, statement: str) -> bool:
        """Decide on a statement the parser could not represent.

        At-rules are kept verbatim. Style rules are matched selector by
        selector on their raw prelude.
        """
        if statement.startswith("@"):
            return True
        brace = next((i for i, c in _scan(statement) if c == "{"), -1)
        if brace == -1 or not statement.endswith("}"):
            return False
        prelude = statement[:brace].strip()

        self.rules_in += 1
        if any(self.matcher.matches(s) for s in split_selectors(prelude)):
            self.rules_out += 1
            return True
        return False


def _fully_parsed(sheet, statement: str) -> bool:
    """Did cssutils represent the whole statement, nested rules included?"""
    rules = _significant(sheet.cssRules)
    if len(rules) != 1:
        return False
    rule = rules[0]
    if rule.type == rule.UNKNOWN_RULE:
        return bool(rule.wellformed)
    if rule.type == rule.MEDIA_RULE:
        body = statement[statement.find("{") + 1:statement.rfind("}")]
        return len(_significant(rule.cssRules)) == len(split_statements(body))
    return True


def _style_text(container) -> str:
    parts = []
    for rule in container.cssRules:
        if rule.type == rule.STYLE_RULE:
            parts.append(rule.style.cssText)
        elif rule.type == rule.MEDIA_RULE:
            parts.append(_style_text(rule))
    return "\n".join(parts)


def _prune_unreferenced(sheet, options: CSSReductionOptions, used: str) -> None:
    """Drop @keyframes / @font-face blocks that ``used`` never mentions."""
    doomed = []
    for index, rule in enumerate(sheet.cssRules):
        if rule.type == rule.FONT_FACE_RULE and not options.keep_font_face:
            family = _font_family(rule)
            if family and family not in used:
                doomed.append(index)
        elif rule.type == rule.UNKNOWN_RULE and not options.keep_keyframes:
            name = _keyframes_name(rule)
            if name and not re.search(rf"(?<![-\w]){re.escape(name)}(?![-\w])", used):
                doomed.append(index)
    for index in reversed(doomed):
        sheet.deleteRule(index)


@contextmanager
def _minified_output():
    previous = cssutils.ser
    prefs = Preferences()
    prefs.useMinified()
    # @keyframes and friends are unknown to cssutils
    prefs.keepUnknownAtRules = True
    cssutils.setSerializer(CSSSerializer(prefs=prefs))
    try:
        yield
    finally:
        cssutils.setSerializer(previous)


def reduce_css(
    markup: str, stylesheet: str, options: Optional[CSSReductionOptions] = None
) -> CSSReduction:
    """Keep only the rules of ``stylesheet`` that can apply to ``markup``.

    The sheet is parsed one top-level statement at a time. Statements
    cssutils cannot represent (``:has()`` selectors, newer at-rules) are
    carried through as raw text instead of being lost. @keyframes and
    @font-face are kept as structural unless the options say otherwise.
    """
    options = options or CSSReductionOptions()
    if not stylesheet.strip():
        return CSSReduction("", 0, 0)

    parser = cssutils.CSSParser(
        loglevel=logging.CRITICAL,
        raiseExceptions=False,
        parseComments=False,
        validate=False,
    )
    rule_filter = _RuleFilter(SelectorMatcher(markup, options.keep_unparseable_selectors))

    # parsed sheets and raw statements, in source order
    pieces: list = []
    for statement in split_statements(strip_comments(stylesheet)):
        sheet = parser.parseString(statement)
        if _fully_parsed(sheet, statement):
            rule_filter.filter(sheet)
            pieces.append(sheet)
        elif rule_filter.keep_raw(statement):
            logger.debug("Keeping unparsed statement: %.60s", statement)
            pieces.append(statement)

    if not (options.keep_keyframes and options.keep_font_face):
        used = "\n".join(
            p if isinstance(p, str) else _style_text(p) for p in pieces
        )
        for piece in pieces:
            if not isinstance(piece, str):
                _prune_unreferenced(piece, options, used)

    with _minified_output():
        css = "".join(
            p if isinstance(p, str) else p.cssText.decode("utf-8") for p in pieces
        )
    logger.debug("CSS rules: %d in, %d kept", rule_filter.rules_in, rule_filter.rules_out)
    return CSSReduction(css, rule_filter.rules_in, rule_filter.rules_out)
