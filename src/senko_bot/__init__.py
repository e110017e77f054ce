"""Discord bot with pluggable interactions and conversational GPT memory."""

__version__ = "0.1.0"
