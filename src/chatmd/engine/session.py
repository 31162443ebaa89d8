"""One watched document and the snapshot state needed to process its change ticks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, Sequence

from ..errors import DocumentReadError, TickError
from ..transcript.context import assemble
from ..transcript.detector import Detection, detect
from ..transcript.formats import TranscriptFormat
from ..transcript.turns import Turn
from ..transcript.writer import append_reply
from ..utils import file_io
from ..utils.telemetry import TelemetryClient

__all__ = ["Completer", "TickState", "TickResult", "ChatSession"]

LOGGER = logging.getLogger(__name__)


class Completer(Protocol):
    """Anything that can turn a context window into a reply."""

    async def complete(self, turns: Sequence[Turn]) -> str:
        ...


class TickState(Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    ASSEMBLING = "assembling"
    CALLING = "calling"
    WRITING = "writing"


@dataclass(slots=True)
class TickResult:
    """What a single tick observed and did."""

    detection: Detection
    context: list[Turn] = field(default_factory=list)
    reply: str | None = None

    @property
    def replied(self) -> bool:
        return self.reply is not None


class ChatSession:
    """Owns the ``previous`` snapshot of one document and runs ticks against it.

    Ticks are serialized by an internal lock. ``previous`` only changes when a
    tick decides there is nothing to send, or after a reply has been written
    and the document re-read; a failed tick leaves it untouched.
    """

    def __init__(
        self,
        path: Path | str,
        completer: Completer,
        *,
        fmt: TranscriptFormat = TranscriptFormat.PLAIN,
        previous: str = "",
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._path = Path(path)
        self._completer = completer
        self._format = fmt
        self._previous = previous
        self._telemetry = telemetry or TelemetryClient(enabled=False)
        self._state = TickState.IDLE
        self._lock = asyncio.Lock()

    @classmethod
    def from_document(
        cls,
        path: Path | str,
        completer: Completer,
        *,
        fmt: TranscriptFormat = TranscriptFormat.PLAIN,
        telemetry: TelemetryClient | None = None,
    ) -> "ChatSession":
        """Create a session whose baseline is the document's current content (empty if missing).

        Raises :class:`DocumentReadError` if the document exists but is not valid UTF-8.
        """

        session = cls(path, completer, fmt=fmt, telemetry=telemetry)
        if session.path.exists():
            session._previous = session.read_document()
        LOGGER.debug("Initial content loaded from %s, length: %s", session.path, len(session._previous))
        return session

    @property
    def path(self) -> Path:
        return self._path

    @property
    def format(self) -> TranscriptFormat:
        return self._format

    @property
    def previous(self) -> str:
        return self._previous

    @property
    def state(self) -> TickState:
        return self._state

    async def process_tick(self) -> TickResult:
        """Run detect, assemble, call and write for the document's current content.

        Raises :class:`TickError` subclasses for recoverable failures.
        """

        async with self._lock:
            try:
                return await self._run_tick()
            except TickError as exc:
                self._telemetry.tick_failed(self._path, exc)
                raise
            finally:
                self._state = TickState.IDLE

    def read_document(self) -> str:
        try:
            return file_io.read_text(self._path)
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentReadError(self._path, str(exc)) from exc

    async def _run_tick(self) -> TickResult:
        self._state = TickState.DETECTING
        current = self.read_document()
        detection = detect(self._previous, current, self._format)
        if not detection.is_new_turn:
            LOGGER.debug("Skip: %s", detection.reason or detection.outcome.value)
            if detection.advances_snapshot:
                self._previous = current
            return TickResult(detection=detection)

        self._telemetry.turn_detected(self._path, chars=len(detection.text))
        self._state = TickState.ASSEMBLING
        context = assemble(detection.preceding_text, detection.text, self._format)
        LOGGER.info("Sending message with %s turn(s) of context", len(context))

        self._state = TickState.CALLING
        reply = await self._completer.complete(context)

        self._state = TickState.WRITING
        append_reply(self._path, reply, self._format)
        # Re-read so the appended reply becomes part of the baseline.
        self._previous = self.read_document()
        LOGGER.info("Wrote assistant reply (%s chars) to %s", len(reply), self._path)
        self._telemetry.reply_written(self._path, chars=len(reply), context_turns=len(context))
        return TickResult(detection=detection, context=context, reply=reply)
