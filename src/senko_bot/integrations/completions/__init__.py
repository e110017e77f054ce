from .client import CompletionClient
from .errors import (
    COMPLETION_FAILED_MESSAGE,
    CompletionAPIError,
    CompletionError,
    CompletionTransportError,
)

__all__ = [
    "CompletionClient",
    "COMPLETION_FAILED_MESSAGE",
    "CompletionError",
    "CompletionAPIError",
    "CompletionTransportError",
]
