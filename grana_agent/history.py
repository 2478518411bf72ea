from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .config import HISTORY_MAX_TURNS

Speaker = Literal["user", "agent"]

_SPEAKER_LABELS: dict[str, str] = {"user": "USUÁRIO", "agent": "IA"}
EMPTY_HISTORY_TEXT = "Nenhuma conversa anterior"


class ConversationTurn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationHistory:
    """Bounded FIFO log of recent turns, used only as grounding text."""

    def __init__(self, max_turns: int = HISTORY_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self._turns: list[ConversationTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        self._turns.append(turn)
        overflow = len(self._turns) - self.max_turns
        if overflow > 0:
            del self._turns[:overflow]

    def add_user_message(self, text: str) -> None:
        self.append(ConversationTurn(speaker="user", text=text))

    def add_agent_message(self, text: str) -> None:
        self.append(ConversationTurn(speaker="agent", text=text))

    def clear(self) -> None:
        self._turns.clear()

    def render(self) -> str:
        if not self._turns:
            return EMPTY_HISTORY_TEXT
        return "\n".join(
            f"{index}. {_SPEAKER_LABELS[turn.speaker]}: {turn.text}"
            for index, turn in enumerate(self._turns, start=1)
        )
