from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from .constants import (
    COMMAND_TYPE_CHAT_INPUT,
    COMMAND_TYPE_MESSAGE,
    COMMAND_TYPE_USER,
    INTERACTION_TYPE_APPLICATION_COMMAND,
    INTERACTION_TYPE_AUTOCOMPLETE,
    INTERACTION_TYPE_MESSAGE_COMPONENT,
)


class InteractionKind(str, Enum):
    COMMAND = "command"
    AUTOCOMPLETE = "autocomplete"
    CONTEXT_MENU = "context_menu"
    COMPONENT = "component"


def _as_id(value: object) -> str | None:
    if value is None:
        return None
    token = str(value).strip()
    return token or None


def _data(interaction_payload: dict[str, Any]) -> dict[str, Any]:
    data = interaction_payload.get("data")
    return data if isinstance(data, dict) else {}


def classify_interaction(interaction_payload: dict[str, Any]) -> Optional[InteractionKind]:
    interaction_type = interaction_payload.get("type")
    if interaction_type == INTERACTION_TYPE_MESSAGE_COMPONENT:
        return InteractionKind.COMPONENT
    if interaction_type == INTERACTION_TYPE_AUTOCOMPLETE:
        return InteractionKind.AUTOCOMPLETE
    if interaction_type != INTERACTION_TYPE_APPLICATION_COMMAND:
        return None
    command_type = _data(interaction_payload).get("type", COMMAND_TYPE_CHAT_INPUT)
    if command_type in (COMMAND_TYPE_USER, COMMAND_TYPE_MESSAGE):
        return InteractionKind.CONTEXT_MENU
    if command_type == COMMAND_TYPE_CHAT_INPUT:
        return InteractionKind.COMMAND
    return None


def extract_command_name(interaction_payload: dict[str, Any]) -> Optional[str]:
    name = _data(interaction_payload).get("name")
    if not isinstance(name, str) or not name:
        return None
    return name


def extract_command_path_and_options(
    interaction_payload: dict[str, Any],
) -> tuple[tuple[str, ...], dict[str, Any]]:
    data = _data(interaction_payload)
    root_name = data.get("name")
    if not isinstance(root_name, str) or not root_name:
        return (), {}

    path: list[str] = [root_name]
    options = data.get("options")
    current_options = options if isinstance(options, list) else []

    while current_options:
        first = current_options[0]
        if not isinstance(first, dict):
            break
        option_type = first.get("type")
        if option_type not in (1, 2):
            break
        name = first.get("name")
        if isinstance(name, str) and name:
            path.append(name)
        nested = first.get("options")
        current_options = nested if isinstance(nested, list) else []

    parsed_options: dict[str, Any] = {}
    for item in current_options:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name:
            continue
        parsed_options[name] = item.get("value")

    return tuple(path), parsed_options


def extract_focused_option(
    interaction_payload: dict[str, Any],
) -> tuple[Optional[str], Any]:
    """Return the name and partial value of the option being autocompleted."""
    pending = list(_data(interaction_payload).get("options") or [])
    while pending:
        item = pending.pop(0)
        if not isinstance(item, dict):
            continue
        if item.get("focused"):
            name = item.get("name")
            return (name if isinstance(name, str) else None), item.get("value")
        nested = item.get("options")
        if isinstance(nested, list):
            pending.extend(nested)
    return None, None


def extract_target_message(interaction_payload: dict[str, Any]) -> Optional[dict[str, Any]]:
    data = _data(interaction_payload)
    target_id = _as_id(data.get("target_id"))
    resolved = data.get("resolved")
    if not target_id or not isinstance(resolved, dict):
        return None
    messages = resolved.get("messages")
    if not isinstance(messages, dict):
        return None
    message = messages.get(target_id)
    return message if isinstance(message, dict) else None


def extract_interaction_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("id"))


def extract_interaction_token(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("token"))


def extract_application_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("application_id"))


def extract_channel_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    channel_id = _as_id(interaction_payload.get("channel_id"))
    if channel_id:
        return channel_id
    channel = interaction_payload.get("channel")
    if isinstance(channel, dict):
        return _as_id(channel.get("id"))
    return None


def extract_guild_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(interaction_payload.get("guild_id"))


def extract_user_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    member = interaction_payload.get("member")
    if isinstance(member, dict):
        member_user = member.get("user")
        if isinstance(member_user, dict):
            user_id = _as_id(member_user.get("id"))
            if user_id:
                return user_id
    user = interaction_payload.get("user")
    if isinstance(user, dict):
        return _as_id(user.get("id"))
    return None


def extract_message_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    """Id of the message a component interaction was triggered from."""
    message = interaction_payload.get("message")
    if not isinstance(message, dict):
        return None
    return _as_id(message.get("id"))


def extract_component_custom_id(interaction_payload: dict[str, Any]) -> Optional[str]:
    return _as_id(_data(interaction_payload).get("custom_id"))
