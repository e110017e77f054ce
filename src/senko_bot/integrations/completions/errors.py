from __future__ import annotations

from typing import Optional

from ...core.exceptions import SenkoBotError

COMPLETION_FAILED_MESSAGE = "Sorry - the OpenAI API request failed."


class CompletionError(SenkoBotError):
    """A completion request did not produce an assistant turn."""

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message, user_message=user_message or COMPLETION_FAILED_MESSAGE)


class CompletionTransportError(CompletionError):
    """The request never produced a readable response (network, bad JSON)."""


class CompletionAPIError(CompletionError):
    """The API answered with an error status or an unusable body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        api_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.api_message = api_message
