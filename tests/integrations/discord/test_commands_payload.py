from __future__ import annotations

import pytest

from senko_bot.handlers import GPT, Ping
from senko_bot.integrations.discord.commands import (
    NUMBER,
    STRING,
    build_message_context_menu,
    build_option,
    build_slash_command,
    string_option,
)


def _find_option(options: list[dict], name: str) -> dict:
    for option in options:
        if option.get("name") == name:
            return option
    raise AssertionError(f"Option not found: {name}")


def test_gpt_builders_structure_is_stable() -> None:
    names = [builder["name"] for builder in GPT.builders]
    assert names == ["gpt", "senko"]

    gpt = GPT.builders[0]
    assert gpt["type"] == 1
    options = gpt["options"]
    assert [option["name"] for option in options] == [
        "query",
        "systemprompt",
        "creativity",
    ]
    query = _find_option(options, "query")
    assert query["type"] == STRING
    assert query["required"] is True

    creativity = _find_option(options, "creativity")
    assert creativity["type"] == NUMBER
    assert creativity["required"] is False
    assert creativity["choices"] == [
        {"name": "Schizo", "value": 1.5},
        {"name": "Normal", "value": 1},
        {"name": "Strict", "value": 0.5},
    ]

    senko = GPT.builders[1]
    assert [option["name"] for option in senko["options"]] == ["query"]


def test_ping_builder_has_no_options() -> None:
    (ping,) = Ping.builders
    assert ping["name"] == "ping"
    assert "options" not in ping


def test_required_options_are_ordered_first() -> None:
    command = build_slash_command(
        "search",
        "Search",
        [
            string_option("scope", "Where to look"),
            string_option("term", "What to find", required=True),
        ],
    )
    assert [option["name"] for option in command["options"]] == ["term", "scope"]


def test_slash_command_names_must_be_lowercase() -> None:
    with pytest.raises(ValueError, match="lowercase"):
        build_slash_command("GPT", "bad")


def test_choices_and_autocomplete_are_exclusive() -> None:
    with pytest.raises(ValueError, match="autocomplete"):
        build_option(STRING, "pick", "Pick", choices=[("a", "a")], autocomplete=True)


def test_message_context_menu_payload() -> None:
    assert build_message_context_menu("Summarize") == {"type": 3, "name": "Summarize"}
