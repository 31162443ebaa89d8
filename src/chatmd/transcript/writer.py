"""Append role-tagged turns to the end of the transcript document."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import DocumentWriteError
from ..utils import file_io
from .formats import TERMINATOR, TranscriptFormat, format_assistant_turn, format_user_turn

__all__ = ["append_reply", "append_user_turn"]

LOGGER = logging.getLogger(__name__)


def append_reply(path: Path | str, reply: str, fmt: TranscriptFormat = TranscriptFormat.PLAIN) -> int:
    """Append ``reply`` as an assistant turn and return the document's new size.

    Raises :class:`DocumentWriteError` if the document cannot be opened, sized or written.
    """

    block = format_assistant_turn(reply, fmt)
    size = _append(path, block)
    LOGGER.debug("Appended %s-char assistant reply to %s", len(reply), path)
    return size


def append_user_turn(
    path: Path | str,
    text: str,
    fmt: TranscriptFormat = TranscriptFormat.PLAIN,
    *,
    send: bool = True,
) -> int:
    """Append ``text`` as a user turn, followed by the send terminator when ``send`` is set."""

    block = format_user_turn(text, fmt)
    if send and not block.endswith(TERMINATOR):
        block += "\n"
    return _append(path, block)


def _append(path: Path | str, block: str) -> int:
    try:
        return file_io.append_text(path, block)
    except OSError as exc:
        raise DocumentWriteError(path, exc.strerror or str(exc)) from exc
