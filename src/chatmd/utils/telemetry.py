"""Opt-in tick telemetry written as JSON lines."""

from __future__ import annotations

import json
import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = ["TickEventKind", "TickEvent", "TelemetryClient", "telemetry_enabled"]

TELEMETRY_FILE_NAME = "ticks.jsonl"
_TELEMETRY_ENV = "CHATMD_TELEMETRY"
_TELEMETRY_DIR_ENV = "CHATMD_TELEMETRY_DIR"
_TRUE_VALUES = {"1", "true", "yes", "on"}


class TickEventKind(Enum):
    TURN_DETECTED = "turn_detected"
    REPLY_WRITTEN = "reply_written"
    TICK_FAILED = "tick_failed"


@dataclass(slots=True, frozen=True)
class TickEvent:
    """One tick milestone for one document."""

    kind: TickEventKind
    document: str
    chars: int = 0
    context_turns: int = 0
    error: str | None = None
    at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_record(self, session_id: str) -> dict[str, Any]:
        record = asdict(self)
        record["kind"] = self.kind.value
        record["session_id"] = session_id
        return record


@dataclass(slots=True)
class TelemetryClient:
    """Buffers tick events and appends them to ``ticks.jsonl`` when enabled."""

    enabled: bool = False
    storage_dir: Path | str | None = None
    max_buffer: int = 32
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    _buffer: list[TickEvent] = field(default_factory=list, init=False, repr=False)

    @property
    def pending(self) -> tuple[TickEvent, ...]:
        return tuple(self._buffer)

    def turn_detected(self, document: Path | str, *, chars: int) -> None:
        self._record(TickEvent(TickEventKind.TURN_DETECTED, str(document), chars=chars))

    def reply_written(self, document: Path | str, *, chars: int, context_turns: int) -> None:
        self._record(
            TickEvent(TickEventKind.REPLY_WRITTEN, str(document), chars=chars, context_turns=context_turns)
        )

    def tick_failed(self, document: Path | str, error: BaseException) -> None:
        self._record(TickEvent(TickEventKind.TICK_FAILED, str(document), error=type(error).__name__))

    def flush(self) -> Path | None:
        """Append buffered events to disk; returns the file written, if any."""

        if not self.enabled or not self._buffer:
            return None
        target_dir = Path(self.storage_dir or os.environ.get(_TELEMETRY_DIR_ENV) or _default_dir())
        target_dir = target_dir.expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / TELEMETRY_FILE_NAME
        lines = [json.dumps(event.to_record(self.session_id), ensure_ascii=False) for event in self._buffer]
        with path.open("a", encoding="utf-8") as handle:
            handle.write("\n".join(lines) + "\n")
        self._buffer.clear()
        return path

    def _record(self, event: TickEvent) -> None:
        if not self.enabled:
            return
        self._buffer.append(event)
        if len(self._buffer) >= self.max_buffer:
            self.flush()


def telemetry_enabled(settings: Any | None = None) -> bool:
    """``CHATMD_TELEMETRY`` wins; otherwise the settings flag decides."""

    env_value = os.environ.get(_TELEMETRY_ENV)
    if env_value is not None:
        return env_value.strip().lower() in _TRUE_VALUES
    return bool(getattr(settings, "telemetry_enabled", False))


def _default_dir() -> Path:
    return Path.home() / ".chatmd" / "telemetry"
