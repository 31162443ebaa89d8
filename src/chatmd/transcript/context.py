"""Build the bounded turn window sent to the completion service."""

from __future__ import annotations

import logging

from .formats import TranscriptFormat
from .parser import parse
from .turns import USER, Turn

__all__ = ["MAX_CONTEXT_TURNS", "MAX_PRIOR_TURNS", "assemble", "trim_turns"]

LOGGER = logging.getLogger(__name__)

MAX_CONTEXT_TURNS = 6
MAX_PRIOR_TURNS = MAX_CONTEXT_TURNS - 1


def trim_turns(turns: list[Turn], limit: int) -> list[Turn]:
    """Keep the newest ``limit`` turns.

    The retained window may start on an assistant turn; alternation is not
    repaired here.
    """

    if limit <= 0:
        return []
    if len(turns) <= limit:
        return list(turns)
    return list(turns[-limit:])


def assemble(
    preceding_text: str,
    new_turn_text: str,
    fmt: TranscriptFormat = TranscriptFormat.PLAIN,
) -> list[Turn]:
    """Return the prior context (at most five turns) followed by the new user turn."""

    prior = parse(preceding_text, fmt)
    window = trim_turns(prior, MAX_PRIOR_TURNS)
    if len(window) < len(prior):
        LOGGER.debug("Trimmed context from %s to %s prior turn(s)", len(prior), len(window))
    window.append(Turn(role=USER, content=new_turn_text))
    return window
