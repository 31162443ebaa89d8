"""Split raw transcript text into ordered, role-tagged turns."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from .formats import (
    HEADING_PREFIX,
    SEPARATOR,
    TranscriptFormat,
    carries_assistant_marker,
    strip_marker,
)
from .turns import Turn, TurnRole, role_for_position

__all__ = ["MarkerBlock", "parse", "parse_plain", "parse_marker", "marker_blocks", "last_line_is_reply"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class MarkerBlock:
    """Consecutive marker-format lines that belong to the same speaker."""

    start: int
    reply: bool
    lines: List[str] = field(default_factory=list)
    role: TurnRole = "user"

    @property
    def content(self) -> str:
        return "\n".join(self.lines).strip()


def parse(text: str, fmt: TranscriptFormat = TranscriptFormat.PLAIN) -> list[Turn]:
    """Return the turns contained in ``text``; never raises and never yields empty turns."""

    if fmt is TranscriptFormat.MARKER:
        return parse_marker(text)
    return parse_plain(text)


def parse_plain(text: str) -> list[Turn]:
    turns: list[Turn] = []
    # Parity follows the raw split index so a dropped empty piece keeps later roles aligned.
    for index, piece in enumerate(text.split(SEPARATOR)):
        content = piece.strip()
        if not content:
            continue
        turns.append(Turn(role=role_for_position(index), content=content))
    LOGGER.debug("Parsed %s plain turn(s)", len(turns))
    return turns


def parse_marker(text: str) -> list[Turn]:
    blocks = marker_blocks(text)
    turns = [Turn(role=block.role, content=block.content) for block in blocks if block.content]
    LOGGER.debug("Parsed %s marker turn(s)", len(turns))
    return turns


def marker_blocks(text: str) -> list[MarkerBlock]:
    """Group content lines into speaker blocks and assign roles by position.

    Blank lines and ``#`` headings carry no content. A line is either an
    assistant reply (orange marker) or not; consecutive lines of the same kind
    form one block.
    """

    blocks: list[MarkerBlock] = []
    offset = 0
    for raw_line in text.splitlines(keepends=True):
        line_start = offset
        offset += len(raw_line)
        stripped = raw_line.strip()
        if not stripped or stripped.startswith(HEADING_PREFIX):
            continue
        content = strip_marker(stripped).strip()
        if not content:
            continue
        reply = carries_assistant_marker(stripped)
        if not blocks or blocks[-1].reply != reply:
            blocks.append(MarkerBlock(start=line_start, reply=reply))
        blocks[-1].lines.append(content)
    for index, block in enumerate(blocks):
        block.role = role_for_position(index)
    return blocks


def last_line_is_reply(text: str) -> bool:
    """Return ``True`` when the last non-empty line carries the assistant marker."""

    for line in reversed(text.splitlines()):
        stripped = line.strip()
        if stripped:
            return carries_assistant_marker(stripped)
    return False
