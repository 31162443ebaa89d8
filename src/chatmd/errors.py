"""Exception hierarchy shared by the transcript engine and its collaborators."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "ChatmdError",
    "StartupError",
    "TickError",
    "DocumentReadError",
    "DocumentWriteError",
    "CompletionError",
    "EmptyCompletionError",
]


class ChatmdError(RuntimeError):
    """Base class for every error raised by chatmd."""


class StartupError(ChatmdError):
    """Raised when the process cannot start (missing credential, notifier failure)."""


class TickError(ChatmdError):
    """Recoverable failure that aborts the current tick but keeps the loop alive."""


class DocumentReadError(TickError):
    """Raised when the watched document cannot be read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to read {path}: {reason}")
        self.path = Path(path)


class DocumentWriteError(TickError):
    """Raised when a reply cannot be appended to the watched document."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Unable to append to {path}: {reason}")
        self.path = Path(path)


class CompletionError(TickError):
    """Raised when the completion service fails or returns an unusable payload."""


class EmptyCompletionError(CompletionError):
    """Raised when the completion service answers with zero choices."""
