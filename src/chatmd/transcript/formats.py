"""Document conventions for the two supported transcript formats.

The plain format delimits turns with a ``***`` rule on its own line. The
marker format wraps every line in a coloured ``<span>`` so replies stay
visually distinct in a Markdown preview. Both formats share the same send
gesture: the document ends with a blank line (two consecutive newlines).
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "TranscriptFormat",
    "SEPARATOR",
    "TERMINATOR",
    "USER_COLOR",
    "ASSISTANT_COLOR",
    "HEADING_PREFIX",
    "wrap_line",
    "strip_marker",
    "carries_assistant_marker",
    "format_assistant_turn",
    "format_user_turn",
]

SEPARATOR = "\n***\n"
TERMINATOR = "\n\n"
USER_COLOR = "blue"
ASSISTANT_COLOR = "orange"
HEADING_PREFIX = "#"
_SPAN_OPEN = "<span"
_ASSISTANT_STYLE = f"color: {ASSISTANT_COLOR}"


class TranscriptFormat(Enum):
    """Supported on-disk transcript conventions."""

    PLAIN = "plain"
    MARKER = "marker"

    @classmethod
    def from_value(cls, value: "TranscriptFormat | str | None") -> "TranscriptFormat":
        if isinstance(value, TranscriptFormat):
            return value
        normalized = (value or "").strip().lower()
        if not normalized:
            return cls.PLAIN
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(item.value for item in cls)
            raise ValueError(f"Unknown transcript format '{value}' (expected one of: {choices})") from exc


def wrap_line(line: str, color: str) -> str:
    return f'<span style="color: {color}">{line}</span>'


def strip_marker(line: str) -> str:
    """Return ``line`` without its ``<span>`` wrapper, if it has one."""

    if _SPAN_OPEN not in line:
        return line
    start = line.find(">") + 1
    end = line.rfind("<")
    if start > 0 and end > start:
        return line[start:end]
    return line


def carries_assistant_marker(line: str) -> bool:
    return _ASSISTANT_STYLE in line


def format_assistant_turn(reply: str, fmt: TranscriptFormat = TranscriptFormat.PLAIN) -> str:
    """Serialize a reply so that appending it never looks like a finished user turn.

    Plain replies are fenced by separators on both sides: the leading one closes
    the user's turn, the trailing one leaves the document ending in ``***\\n``
    rather than in a blank line.
    """

    body = reply.strip()
    if fmt is TranscriptFormat.MARKER:
        return "\n" + _wrap_block(body, ASSISTANT_COLOR) + "\n"
    return SEPARATOR + body + SEPARATOR


def format_user_turn(text: str, fmt: TranscriptFormat = TranscriptFormat.PLAIN) -> str:
    body = text.strip()
    if fmt is TranscriptFormat.MARKER:
        return "\n" + _wrap_block(body, USER_COLOR) + "\n"
    return "\n" + body + "\n"


def _wrap_block(body: str, color: str) -> str:
    lines = [line for line in body.splitlines() if line.strip()]
    return "\n".join(wrap_line(line, color) for line in lines)
