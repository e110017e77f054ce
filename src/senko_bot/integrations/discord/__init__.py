"""Discord gateway, REST and interaction plumbing."""

from .collector import ComponentCollector
from .command_registry import clear_commands, sync_commands
from .constants import (
    DISCORD_API_BASE_URL,
    DISCORD_GATEWAY_URL,
)
from .dispatcher import InteractionDispatcher
from .errors import (
    DiscordAPIError,
    DiscordError,
    DiscordPermanentError,
    DiscordTransientError,
)
from .gateway import (
    DiscordGatewayClient,
    GatewayFrame,
    build_identify_payload,
    calculate_reconnect_backoff,
    parse_gateway_frame,
)
from .handler import BotInteraction
from .interactions import InteractionKind, classify_interaction
from .registry import (
    CommandRegistry,
    HandlerDescriptor,
    LoadResult,
    build_command_payloads,
    load_handlers,
)
from .responder import InteractionContext
from .rest import DiscordRestClient

__all__ = [
    "DISCORD_API_BASE_URL",
    "DISCORD_GATEWAY_URL",
    "BotInteraction",
    "CommandRegistry",
    "ComponentCollector",
    "DiscordAPIError",
    "DiscordError",
    "DiscordGatewayClient",
    "DiscordPermanentError",
    "DiscordRestClient",
    "DiscordTransientError",
    "GatewayFrame",
    "HandlerDescriptor",
    "InteractionContext",
    "InteractionDispatcher",
    "InteractionKind",
    "LoadResult",
    "build_command_payloads",
    "build_identify_payload",
    "calculate_reconnect_backoff",
    "classify_interaction",
    "clear_commands",
    "load_handlers",
    "parse_gateway_frame",
    "sync_commands",
]
