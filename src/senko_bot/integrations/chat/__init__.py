"""Platform-neutral conversation state: history, active replies, chunking."""

from .active_replies import ActiveReply, ActiveReplyTracker, strip_components
from .conversation_store import (
    IDLE_EXPIRY_SECONDS,
    ConversationStore,
    ConversationTurn,
    Flavor,
    session_key,
)
from .text_chunking import DEFAULT_CHUNK_LIMIT, split_response

__all__ = [
    "ActiveReply",
    "ActiveReplyTracker",
    "strip_components",
    "IDLE_EXPIRY_SECONDS",
    "ConversationStore",
    "ConversationTurn",
    "Flavor",
    "session_key",
    "DEFAULT_CHUNK_LIMIT",
    "split_response",
]
