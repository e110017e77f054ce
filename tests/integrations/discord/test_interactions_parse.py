from __future__ import annotations

from senko_bot.integrations.discord.interactions import (
    InteractionKind,
    classify_interaction,
    extract_channel_id,
    extract_command_name,
    extract_command_path_and_options,
    extract_component_custom_id,
    extract_focused_option,
    extract_guild_id,
    extract_interaction_id,
    extract_interaction_token,
    extract_message_id,
    extract_target_message,
    extract_user_id,
)


def test_extract_command_path_and_options_for_nested_subcommand() -> None:
    payload = {
        "data": {
            "name": "admin",
            "options": [
                {
                    "type": 2,
                    "name": "memory",
                    "options": [
                        {
                            "type": 1,
                            "name": "clear",
                            "options": [
                                {"type": 3, "name": "user", "value": "user-123"}
                            ],
                        }
                    ],
                }
            ],
        }
    }
    path, options = extract_command_path_and_options(payload)
    assert path == ("admin", "memory", "clear")
    assert options == {"user": "user-123"}


def test_extract_flat_options_for_gpt() -> None:
    payload = {
        "data": {
            "name": "gpt",
            "options": [
                {"type": 3, "name": "query", "value": "hello"},
                {"type": 10, "name": "creativity", "value": 0.5},
            ],
        }
    }
    path, options = extract_command_path_and_options(payload)
    assert path == ("gpt",)
    assert options == {"query": "hello", "creativity": 0.5}
    assert extract_command_name(payload) == "gpt"


def test_extract_ids_from_interaction_payload() -> None:
    payload = {
        "id": "inter-1",
        "token": "token-1",
        "channel_id": "chan-1",
        "guild_id": "guild-1",
        "member": {"user": {"id": "user-1"}},
    }
    assert extract_interaction_id(payload) == "inter-1"
    assert extract_interaction_token(payload) == "token-1"
    assert extract_channel_id(payload) == "chan-1"
    assert extract_guild_id(payload) == "guild-1"
    assert extract_user_id(payload) == "user-1"


def test_extract_user_id_from_direct_message_payload() -> None:
    payload = {"user": {"id": 42}, "channel": {"id": "dm-1"}}
    assert extract_user_id(payload) == "42"
    assert extract_channel_id(payload) == "dm-1"
    assert extract_guild_id(payload) is None


def test_classify_interaction_kinds() -> None:
    assert classify_interaction({"type": 2, "data": {"type": 1}}) is InteractionKind.COMMAND
    assert classify_interaction({"type": 2, "data": {}}) is InteractionKind.COMMAND
    assert (
        classify_interaction({"type": 2, "data": {"type": 3}})
        is InteractionKind.CONTEXT_MENU
    )
    assert (
        classify_interaction({"type": 2, "data": {"type": 2}})
        is InteractionKind.CONTEXT_MENU
    )
    assert classify_interaction({"type": 4}) is InteractionKind.AUTOCOMPLETE
    assert classify_interaction({"type": 3}) is InteractionKind.COMPONENT
    assert classify_interaction({"type": 1}) is None


def test_extract_component_fields() -> None:
    payload = {
        "type": 3,
        "data": {"custom_id": "gpt:clear", "component_type": 2},
        "message": {"id": "msg-7"},
    }
    assert extract_component_custom_id(payload) == "gpt:clear"
    assert extract_message_id(payload) == "msg-7"
    assert extract_message_id({"type": 3}) is None


def test_extract_focused_option_searches_nested_options() -> None:
    payload = {
        "data": {
            "name": "lookup",
            "options": [
                {
                    "type": 1,
                    "name": "by",
                    "options": [
                        {"type": 3, "name": "term", "value": "fo", "focused": True}
                    ],
                }
            ],
        }
    }
    assert extract_focused_option(payload) == ("term", "fo")
    assert extract_focused_option({"data": {}}) == (None, None)


def test_extract_target_message_for_context_menu() -> None:
    payload = {
        "data": {
            "type": 3,
            "target_id": "m-1",
            "resolved": {"messages": {"m-1": {"id": "m-1", "content": "hi"}}},
        }
    }
    assert extract_target_message(payload) == {"id": "m-1", "content": "hi"}
    assert extract_target_message({"data": {"target_id": "m-2"}}) is None
