from __future__ import annotations

DISCORD_API_BASE_URL = "https://discord.com/api/v10"
DISCORD_GATEWAY_URL = "wss://gateway.discord.gg/?v=10&encoding=json"

DISCORD_EPHEMERAL_FLAG = 1 << 6

# https://discord.com/developers/docs/interactions/receiving-and-responding#interaction-object-interaction-type
INTERACTION_TYPE_APPLICATION_COMMAND = 2
INTERACTION_TYPE_MESSAGE_COMPONENT = 3
INTERACTION_TYPE_AUTOCOMPLETE = 4

# Application command types.
COMMAND_TYPE_CHAT_INPUT = 1
COMMAND_TYPE_USER = 2
COMMAND_TYPE_MESSAGE = 3

# Interaction callback types.
CALLBACK_CHANNEL_MESSAGE = 4
CALLBACK_DEFERRED_CHANNEL_MESSAGE = 5
CALLBACK_DEFERRED_UPDATE_MESSAGE = 6
CALLBACK_UPDATE_MESSAGE = 7
CALLBACK_AUTOCOMPLETE_RESULT = 8

# Gateway opcodes.
GATEWAY_OP_DISPATCH = 0
GATEWAY_OP_HEARTBEAT = 1
GATEWAY_OP_IDENTIFY = 2
GATEWAY_OP_RECONNECT = 7
GATEWAY_OP_INVALID_SESSION = 9
GATEWAY_OP_HELLO = 10
GATEWAY_OP_HEARTBEAT_ACK = 11

# Message component types and button styles.
COMPONENT_TYPE_ACTION_ROW = 1
COMPONENT_TYPE_BUTTON = 2
BUTTON_STYLE_SECONDARY = 2
BUTTON_STYLE_DANGER = 4
