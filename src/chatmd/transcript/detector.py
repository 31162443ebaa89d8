"""Decide whether the document now ends with a freshly completed user turn.

The detector is stateless apart from the ``previous`` snapshot its caller
passes in: every decision is re-derived from the full current text, so a
restart costs at most one extra read of the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .formats import SEPARATOR, TERMINATOR, TranscriptFormat
from .parser import last_line_is_reply, marker_blocks
from .turns import USER

__all__ = ["DetectionOutcome", "Detection", "detect"]

LOGGER = logging.getLogger(__name__)


class DetectionOutcome(Enum):
    """Possible results of comparing two document snapshots."""

    NO_CHANGE = "no_change"
    WAITING_FOR_TERMINATOR = "waiting_for_terminator"
    ASSISTANT_TAIL = "assistant_tail"
    NEW_USER_TURN = "new_user_turn"


@dataclass(slots=True, frozen=True)
class Detection:
    """Outcome of :func:`detect` plus the extracted turn when there is one."""

    outcome: DetectionOutcome
    text: str = ""
    preceding_text: str = ""
    reason: str = ""

    @property
    def is_new_turn(self) -> bool:
        return self.outcome is DetectionOutcome.NEW_USER_TURN

    @property
    def advances_snapshot(self) -> bool:
        """Whether the caller should store the current text as its new baseline."""

        return self.outcome in (DetectionOutcome.WAITING_FOR_TERMINATOR, DetectionOutcome.ASSISTANT_TAIL)


_NO_CHANGE = Detection(DetectionOutcome.NO_CHANGE, reason="content unchanged")


def detect(previous: str, current: str, fmt: TranscriptFormat = TranscriptFormat.PLAIN) -> Detection:
    """Compare ``previous`` and ``current`` and isolate a new user turn if one was completed."""

    if current == previous:
        return _NO_CHANGE
    if not current.endswith(TERMINATOR):
        return _waiting("no blank line at end of document")

    # Drop only the final newline: a separator may share its trailing newline with the terminator.
    body = current[:-1]
    if fmt is TranscriptFormat.MARKER:
        return _detect_marker(current, body)
    return _detect_plain(body)


def _detect_plain(body: str) -> Detection:
    boundary = body.rfind(SEPARATOR)
    if boundary < 0:
        candidate = body.strip()
        preceding = ""
    else:
        candidate = body[boundary + len(SEPARATOR):].strip()
        preceding = body[:boundary]
    if not candidate:
        return _waiting("empty message after last separator")
    LOGGER.debug("Detected new user turn (%s chars, %s preceding)", len(candidate), len(preceding))
    return Detection(DetectionOutcome.NEW_USER_TURN, text=candidate, preceding_text=preceding)


def _detect_marker(current: str, body: str) -> Detection:
    if last_line_is_reply(current):
        return Detection(DetectionOutcome.ASSISTANT_TAIL, reason="last message is from the assistant")
    blocks = marker_blocks(body)
    if not blocks:
        return _waiting("no message content")
    last = blocks[-1]
    candidate = last.content
    if not candidate:
        return _waiting("empty message")
    if last.role != USER:
        return Detection(DetectionOutcome.ASSISTANT_TAIL, reason="last message is not from the user")
    LOGGER.debug("Detected new marker user turn (%s chars)", len(candidate))
    return Detection(DetectionOutcome.NEW_USER_TURN, text=candidate, preceding_text=body[: last.start])


def _waiting(reason: str) -> Detection:
    return Detection(DetectionOutcome.WAITING_FOR_TERMINATOR, reason=reason)
