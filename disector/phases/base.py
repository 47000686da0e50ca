"""Shared invocation contract for reduction phases."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from disector.models.report import PhaseStats

LogCallback = Callable[..., None]
PristineCallback = Callable[[str], Awaitable[bool]]


class PhaseContext:
    """What a phase gets from the orchestrator: a logger and the oracle."""

    def __init__(self, log: LogCallback, pristine: PristineCallback):
        self.log = log
        self.pristine = pristine


class Phase:
    """A reduction algorithm run once against the primary document.

    Phases keep nothing between invocations; counters live in the
    ``PhaseStats`` returned by ``process``.
    """

    name = ""
    # "tree" phases are handed the root element, "document" phases the session
    scope = "tree"

    def __init__(self, context: PhaseContext):
        self.log = context.log
        self.pristine = context.pristine

    async def process(self, target: Any) -> PhaseStats:
        raise NotImplementedError
