from __future__ import annotations

from senko_bot.integrations.discord.components import (
    CLEAR_MEMORY_CUSTOM_ID,
    build_action_row,
    build_button,
    build_clear_memory_row,
)
from senko_bot.integrations.discord.constants import (
    BUTTON_STYLE_DANGER,
    BUTTON_STYLE_SECONDARY,
)


def test_action_row_wraps_components_in_order() -> None:
    first = build_button("One", "x:1")
    second = build_button("Two", "x:2")

    row = build_action_row(first, second)

    assert row == {"type": 1, "components": [first, second]}


def test_button_defaults_to_enabled_secondary() -> None:
    button = build_button("Retry", "chat:retry")

    assert button == {
        "type": 2,
        "style": BUTTON_STYLE_SECONDARY,
        "label": "Retry",
        "custom_id": "chat:retry",
        "disabled": False,
    }


def test_disabled_button_keeps_style() -> None:
    button = build_button("Fox", "chat:fox", style=4, disabled=True)

    assert button["style"] == 4
    assert button["disabled"] is True


def test_clear_memory_row_before_and_after_click() -> None:
    (active,) = build_clear_memory_row()["components"]
    (used,) = build_clear_memory_row(cleared=True)["components"]

    assert active["label"] == "Clear Memory"
    assert active["style"] == BUTTON_STYLE_DANGER
    assert active["disabled"] is False
    assert used["label"] == "Memory Cleared"
    assert used["disabled"] is True
    assert active["custom_id"] == used["custom_id"] == CLEAR_MEMORY_CUSTOM_ID
