"""The closed set of phases and their canonical order."""

from __future__ import annotations

from .attribute_remover import AttributeRemover
from .base import Phase
from .class_remover import ClassRemover
from .css_remover import CSSRemover
from .html_minifier import HTMLMinifier
from .node_remover import NodeRemover

PHASES: dict[str, type[Phase]] = {
    "node": NodeRemover,
    "attr": AttributeRemover,
    "class": ClassRemover,
    "css": CSSRemover,
    "html": HTMLMinifier,
}

# Phases always run in this order, whatever order they were enabled in
PHASE_ORDER = list(PHASES)
