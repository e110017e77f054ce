"""Shared error hierarchy.

Every error the bot raises on purpose derives from :class:`SenkoBotError` so
that handler boundaries can tell expected failures (with a message that is
safe to show users) from programming errors.
"""

from __future__ import annotations

from typing import Optional


class SenkoBotError(Exception):
    """Base error for the bot."""

    recoverable = True
    severity = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(SenkoBotError):
    """Failure that may succeed if the same operation is attempted later."""

    severity = "warning"


class PermanentError(SenkoBotError):
    """Failure that will not go away without a configuration or code change."""

    recoverable = False
    severity = "critical"


class ConfigError(PermanentError):
    """Raised when the bot configuration is missing or invalid."""


class HandlerLoadError(SenkoBotError):
    """A handler entry does not satisfy the interaction handler contract."""


class DuplicateCommandError(HandlerLoadError):
    """A handler declares an invocation name that is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Interaction name already registered: {name}")
        self.name = name
