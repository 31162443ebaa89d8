"""Transcript engine: turn parsing, boundary detection, context windows and reply writing."""

from .context import MAX_CONTEXT_TURNS, assemble
from .detector import Detection, DetectionOutcome, detect
from .formats import SEPARATOR, TERMINATOR, TranscriptFormat
from .parser import parse
from .turns import Turn, TurnRole
from .writer import append_reply, append_user_turn

__all__ = [
    "MAX_CONTEXT_TURNS",
    "SEPARATOR",
    "TERMINATOR",
    "Detection",
    "DetectionOutcome",
    "TranscriptFormat",
    "Turn",
    "TurnRole",
    "append_reply",
    "append_user_turn",
    "assemble",
    "detect",
    "parse",
]
