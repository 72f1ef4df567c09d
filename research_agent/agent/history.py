# =============================================================================
# Conversation History — Prior Turns Replayed Into Each Run
# =============================================================================
#
# The agent only reads history: get_recent_turns() is called once per model
# call and the turns are inserted verbatim between the system prompt and
# the iteration prompt. Writing the new user/assistant pair after a run is
# the caller's job (see api/chat.py).
# =============================================================================

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal, Protocol

from research_agent.config import settings

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatHistory(Protocol):
    def get_recent_turns(self) -> list[ConversationTurn]:
        ...


class InMemoryChatHistory:
    """Bounded history; the oldest turns fall off once max_turns is reached."""

    def __init__(
        self,
        max_turns: int | None = None,
        turns: list[ConversationTurn] | None = None,
    ) -> None:
        self.max_turns = max_turns or settings.history_max_turns
        self._turns: deque[ConversationTurn] = deque(turns or (), maxlen=self.max_turns)

    def add_user_message(self, content: str) -> None:
        self._turns.append(ConversationTurn("user", content))

    def add_assistant_message(self, content: str) -> None:
        self._turns.append(ConversationTurn("assistant", content))

    def get_recent_turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
