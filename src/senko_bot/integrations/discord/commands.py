"""Builders for Discord application command registration payloads."""

from __future__ import annotations

from typing import Any, Optional, Union

from .constants import COMMAND_TYPE_CHAT_INPUT, COMMAND_TYPE_MESSAGE, COMMAND_TYPE_USER

# Discord application command option types.
SUB_COMMAND = 1
SUB_COMMAND_GROUP = 2
STRING = 3
INTEGER = 4
BOOLEAN = 5
NUMBER = 10

MAX_CHOICES = 25

ChoiceValue = Union[str, int, float]


def build_choice(name: str, value: ChoiceValue) -> dict[str, Any]:
    return {"name": name[:100], "value": value}


def build_option(
    option_type: int,
    name: str,
    description: str,
    *,
    required: bool = False,
    choices: Optional[list[tuple[str, ChoiceValue]]] = None,
    autocomplete: bool = False,
) -> dict[str, Any]:
    if choices and autocomplete:
        raise ValueError(f"option {name!r} cannot use both choices and autocomplete")
    option: dict[str, Any] = {
        "type": option_type,
        "name": name,
        "description": description,
        "required": required,
    }
    if choices:
        option["choices"] = [
            build_choice(label, value) for label, value in choices[:MAX_CHOICES]
        ]
    if autocomplete:
        option["autocomplete"] = True
    return option


def string_option(name: str, description: str, **kwargs: Any) -> dict[str, Any]:
    return build_option(STRING, name, description, **kwargs)


def number_option(name: str, description: str, **kwargs: Any) -> dict[str, Any]:
    return build_option(NUMBER, name, description, **kwargs)


def build_slash_command(
    name: str,
    description: str,
    options: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    if not name or name != name.lower():
        raise ValueError(f"slash command names must be lowercase: {name!r}")
    # Discord rejects commands whose required options follow optional ones.
    ordered = sorted(options or [], key=lambda item: not item.get("required", False))
    command: dict[str, Any] = {
        "type": COMMAND_TYPE_CHAT_INPUT,
        "name": name,
        "description": description,
    }
    if ordered:
        command["options"] = ordered
    return command


def build_message_context_menu(name: str) -> dict[str, Any]:
    return {"type": COMMAND_TYPE_MESSAGE, "name": name}


def build_user_context_menu(name: str) -> dict[str, Any]:
    return {"type": COMMAND_TYPE_USER, "name": name}
