"""Shared test helpers and stub classes."""

from __future__ import annotations

import asyncio
from typing import Sequence

from chatmd.errors import CompletionError
from chatmd.transcript.turns import Turn


class FakeCompleter:
    """Completion stub that records every context window it receives.

    Example:
        completer = FakeCompleter(["first reply", "second reply"])
        session = ChatSession(path, completer)
    """

    def __init__(
        self,
        replies: Sequence[str] = ("Reply",),
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._replies = list(replies)
        self._error = error
        self._delay = delay
        self.calls: list[list[Turn]] = []

    async def complete(self, turns: Sequence[Turn]) -> str:
        self.calls.append(list(turns))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if not self._replies:
            raise CompletionError("No scripted reply left")
        return self._replies.pop(0)
