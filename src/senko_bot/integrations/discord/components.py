from __future__ import annotations

from typing import Any

from .constants import (
    BUTTON_STYLE_DANGER,
    BUTTON_STYLE_SECONDARY,
    COMPONENT_TYPE_ACTION_ROW,
    COMPONENT_TYPE_BUTTON,
)

CLEAR_MEMORY_CUSTOM_ID = "gpt:clear"
CLEAR_MEMORY_LABEL = "Clear Memory"
MEMORY_CLEARED_LABEL = "Memory Cleared"


def build_button(
    label: str,
    custom_id: str,
    *,
    style: int = BUTTON_STYLE_SECONDARY,
    disabled: bool = False,
) -> dict[str, Any]:
    button: dict[str, Any] = {
        "type": COMPONENT_TYPE_BUTTON,
        "style": style,
        "label": label,
        "custom_id": custom_id,
        "disabled": disabled,
    }
    return button


def build_action_row(*components: dict[str, Any]) -> dict[str, Any]:
    return {"type": COMPONENT_TYPE_ACTION_ROW, "components": list(components)}


def build_clear_memory_row(*, cleared: bool = False) -> dict[str, Any]:
    """The row under a GPT answer; once used it stays visible but disabled."""
    label = MEMORY_CLEARED_LABEL if cleared else CLEAR_MEMORY_LABEL
    return build_action_row(
        build_button(
            label,
            CLEAR_MEMORY_CUSTOM_ID,
            style=BUTTON_STYLE_DANGER,
            disabled=cleared,
        )
    )
