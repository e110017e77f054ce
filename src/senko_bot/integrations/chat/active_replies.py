from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ...core.logging_utils import log_event


class ReplyEditor(Protocol):
    async def edit_message(
        self, message_id: str, *, content: Any = ..., components: Any = ...
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class ActiveReply:
    interaction: ReplyEditor
    message_id: str


class ActiveReplyTracker:
    """Tracks the one reply per session that still carries a live button."""

    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._replies: dict[str, ActiveReply] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._replies

    def __len__(self) -> int:
        return len(self._replies)

    def get(self, key: str) -> Optional[ActiveReply]:
        return self._replies.get(key)

    async def set(self, key: str, interaction: ReplyEditor, message_id: str) -> ActiveReply:
        reply = ActiveReply(interaction=interaction, message_id=message_id)
        previous = self._replies.get(key)
        self._replies[key] = reply
        if previous is not None and previous.message_id != message_id:
            await strip_components(previous, logger=self._logger)
        return reply

    def remove(self, key: str, message_id: Optional[str] = None) -> bool:
        """Forget the active reply, unless a newer one has replaced ``message_id``."""
        current = self._replies.get(key)
        if current is None:
            return False
        if message_id is not None and current.message_id != message_id:
            return False
        del self._replies[key]
        return True


async def strip_components(reply: ActiveReply, *, logger: logging.Logger) -> bool:
    """Remove buttons from a reply; the message may already be gone."""
    try:
        await reply.interaction.edit_message(reply.message_id, components=[])
    except Exception as exc:
        log_event(
            logger,
            logging.DEBUG,
            "chat.active_reply.strip_failed",
            message_id=reply.message_id,
            exc=exc,
        )
        return False
    return True
