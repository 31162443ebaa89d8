"""Turn data model shared by the parser, detector and context assembler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal, cast

from openai.types.chat import ChatCompletionMessageParam

TurnRole = Literal["user", "assistant"]
USER: TurnRole = "user"
ASSISTANT: TurnRole = "assistant"


def role_for_position(index: int) -> TurnRole:
    """Return the role implied by a turn's position; even slots belong to the user."""

    return USER if index % 2 == 0 else ASSISTANT


@dataclass(slots=True, frozen=True)
class Turn:
    """One role-tagged message extracted from the transcript."""

    role: TurnRole
    content: str

    def __post_init__(self) -> None:
        if self.role not in (USER, ASSISTANT):
            raise ValueError(f"Unsupported turn role: {self.role!r}")
        trimmed = (self.content or "").strip()
        if not trimmed:
            raise ValueError("Turn content must not be empty")
        object.__setattr__(self, "content", trimmed)

    def to_chat_param(self) -> ChatCompletionMessageParam:
        return cast(ChatCompletionMessageParam, {"role": self.role, "content": self.content})

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}
