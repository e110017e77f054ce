"""In-memory conversation history keyed by (channel, user).

Sessions expire after an idle period instead of being capped by turn count;
nothing here survives a restart.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol

from ...core.logging_utils import log_event

IDLE_EXPIRY_SECONDS = 60 * 60

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLES = frozenset({ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT})


class Flavor(str, Enum):
    NONE = "none"
    SENKO = "senko"


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"unknown conversation role: {self.role!r}")

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_payload(cls, payload: Any) -> "ConversationTurn":
        if not isinstance(payload, dict):
            raise ValueError("conversation turn must be a mapping")
        role = payload.get("role")
        content = payload.get("content")
        if not isinstance(role, str) or not isinstance(content, str):
            raise ValueError("conversation turn requires string role and content")
        return cls(role=role, content=content)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def session_key(channel_id: str, user_id: str) -> str:
    return f"{channel_id}:{user_id}"


@dataclass
class ConversationSession:
    history: list[ConversationTurn]
    flavor: Flavor
    timer: Optional[TimerHandle] = field(default=None, repr=False)


class ConversationStore:
    def __init__(
        self,
        *,
        idle_seconds: float = IDLE_EXPIRY_SECONDS,
        call_later: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._idle_seconds = idle_seconds
        self._call_later = call_later
        self._logger = logger or logging.getLogger(__name__)
        self._sessions: dict[str, ConversationSession] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, key: str) -> Optional[list[ConversationTurn]]:
        session = self._sessions.get(key)
        if session is None:
            return None
        return list(session.history)

    def flavor_of(self, key: str) -> Optional[Flavor]:
        session = self._sessions.get(key)
        return session.flavor if session is not None else None

    def snapshot(
        self, key: str, flavor: Flavor, default_system_prompt: str
    ) -> list[ConversationTurn]:
        """History the next request for ``key`` should carry; stores nothing."""
        session = self._sessions.get(key)
        if session is not None and session.flavor == flavor:
            return list(session.history)
        return [ConversationTurn(ROLE_SYSTEM, default_system_prompt)]

    def get_or_create(
        self, key: str, flavor: Flavor, default_system_prompt: str
    ) -> list[ConversationTurn]:
        """Return a copy of the session history, starting over on a flavor switch."""
        session = self._sessions.get(key)
        if session is not None and session.flavor == flavor:
            return list(session.history)
        if session is not None:
            self._cancel_timer(session)
            log_event(
                self._logger,
                logging.DEBUG,
                "chat.conversation.flavor_reset",
                session_key=key,
                previous=session.flavor.value,
                flavor=flavor.value,
            )
        self._sessions[key] = ConversationSession(
            history=[ConversationTurn(ROLE_SYSTEM, default_system_prompt)],
            flavor=flavor,
        )
        self.touch(key)
        return list(self._sessions[key].history)

    def append(self, key: str, turn: ConversationTurn) -> None:
        session = self._sessions.get(key)
        if session is None:
            raise KeyError(key)
        session.history.append(turn)

    def replace(
        self, key: str, history: Iterable[ConversationTurn], flavor: Flavor
    ) -> None:
        """Overwrite the stored history; concurrent writers race, last one wins."""
        turns = list(history)
        if not turns or turns[0].role != ROLE_SYSTEM:
            raise ValueError("conversation history must start with a system turn")
        session = self._sessions.get(key)
        if session is None:
            self._sessions[key] = ConversationSession(history=turns, flavor=flavor)
            return
        session.history = turns
        session.flavor = flavor

    def touch(self, key: str) -> None:
        session = self._sessions.get(key)
        if session is None:
            return
        self._cancel_timer(session)
        session.timer = self._schedule(self._idle_seconds, lambda: self._expire(key, session))

    def clear(self, key: str) -> bool:
        session = self._sessions.pop(key, None)
        if session is None:
            return False
        self._cancel_timer(session)
        return True

    def close(self) -> None:
        for session in self._sessions.values():
            self._cancel_timer(session)
        self._sessions.clear()

    def _expire(self, key: str, session: ConversationSession) -> None:
        # A cleared-then-recreated session owns a fresh timer; leave it alone.
        if self._sessions.get(key) is not session:
            return
        del self._sessions[key]
        log_event(
            self._logger,
            logging.DEBUG,
            "chat.conversation.expired",
            session_key=key,
            turn_count=len(session.history),
        )

    def _schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if self._call_later is not None:
            return self._call_later(delay, callback)
        return asyncio.get_running_loop().call_later(delay, callback)

    @staticmethod
    def _cancel_timer(session: ConversationSession) -> None:
        if session.timer is not None:
            session.timer.cancel()
            session.timer = None
