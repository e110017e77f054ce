"""Built-in interaction handlers, registered in this order at startup."""

from .gpt import GPT
from .ping import Ping

BUILTIN_HANDLERS = (GPT, Ping)

__all__ = ["BUILTIN_HANDLERS", "GPT", "Ping"]
