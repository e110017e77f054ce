from __future__ import annotations

from typing import Any, Optional, Protocol

from .constants import (
    CALLBACK_AUTOCOMPLETE_RESULT,
    CALLBACK_CHANNEL_MESSAGE,
    CALLBACK_DEFERRED_CHANNEL_MESSAGE,
    CALLBACK_DEFERRED_UPDATE_MESSAGE,
    CALLBACK_UPDATE_MESSAGE,
    DISCORD_EPHEMERAL_FLAG,
)
from .interactions import (
    InteractionKind,
    classify_interaction,
    extract_application_id,
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

_UNSET: Any = object()


class InteractionRestClient(Protocol):
    async def create_interaction_response(
        self, *, interaction_id: str, interaction_token: str, payload: dict[str, Any]
    ) -> None: ...

    async def create_followup_message(
        self, *, application_id: str, interaction_token: str, payload: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def edit_interaction_message(
        self,
        *,
        application_id: str,
        interaction_token: str,
        message_id: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]: ...


def build_message_payload(
    content: Any = _UNSET,
    *,
    components: Any = _UNSET,
    ephemeral: bool = False,
) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if content is not _UNSET:
        payload["content"] = content
    if components is not _UNSET:
        payload["components"] = [] if components is None else components
    if ephemeral:
        payload["flags"] = DISCORD_EPHEMERAL_FLAG
    return payload


class InteractionContext:
    """One inbound interaction plus the calls needed to answer it.

    Tracks whether the interaction has been replied to or deferred so callers
    can choose between an initial response and a follow-up.
    """

    def __init__(
        self,
        payload: dict[str, Any],
        *,
        rest: InteractionRestClient,
        application_id: str,
    ) -> None:
        self.payload = payload
        self._rest = rest
        self.kind: Optional[InteractionKind] = classify_interaction(payload)
        self.interaction_id = extract_interaction_id(payload) or ""
        self.token = extract_interaction_token(payload) or ""
        self.application_id = extract_application_id(payload) or application_id
        self.channel_id = extract_channel_id(payload)
        self.guild_id = extract_guild_id(payload)
        self.user_id = extract_user_id(payload)
        self.command_name = extract_command_name(payload)
        self.command_path, self.options = extract_command_path_and_options(payload)
        self.custom_id = extract_component_custom_id(payload)
        self.message_id = extract_message_id(payload)
        self.replied = False
        self.deferred = False

    @property
    def is_complete(self) -> bool:
        return bool(self.interaction_id and self.token)

    def get_string(self, name: str) -> Optional[str]:
        value = self.options.get(name)
        return value if isinstance(value, str) else None

    def get_number(self, name: str) -> Optional[float]:
        value = self.options.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    def focused_option(self) -> tuple[Optional[str], Any]:
        return extract_focused_option(self.payload)

    def target_message(self) -> Optional[dict[str, Any]]:
        return extract_target_message(self.payload)

    async def _callback(self, callback_type: int, data: Optional[dict[str, Any]]) -> None:
        payload: dict[str, Any] = {"type": callback_type}
        if data is not None:
            payload["data"] = data
        await self._rest.create_interaction_response(
            interaction_id=self.interaction_id,
            interaction_token=self.token,
            payload=payload,
        )

    async def reply(
        self,
        content: Any = _UNSET,
        *,
        components: Any = _UNSET,
        ephemeral: bool = False,
    ) -> None:
        await self._callback(
            CALLBACK_CHANNEL_MESSAGE,
            build_message_payload(content, components=components, ephemeral=ephemeral),
        )
        self.replied = True

    async def defer(self, *, ephemeral: bool = False) -> None:
        await self._callback(
            CALLBACK_DEFERRED_CHANNEL_MESSAGE,
            build_message_payload(ephemeral=ephemeral) or None,
        )
        self.deferred = True

    async def defer_update(self) -> None:
        await self._callback(CALLBACK_DEFERRED_UPDATE_MESSAGE, None)
        self.deferred = True

    async def update(self, content: Any = _UNSET, *, components: Any = _UNSET) -> None:
        """Edit the message a component was clicked on, as the interaction response."""
        await self._callback(
            CALLBACK_UPDATE_MESSAGE,
            build_message_payload(content, components=components),
        )
        self.replied = True

    async def respond_autocomplete(self, choices: list[dict[str, Any]]) -> None:
        await self._callback(CALLBACK_AUTOCOMPLETE_RESULT, {"choices": choices[:25]})
        self.replied = True

    async def edit_reply(
        self, content: Any = _UNSET, *, components: Any = _UNSET
    ) -> dict[str, Any]:
        return await self.edit_message(
            "@original", content=content, components=components
        )

    async def edit_message(
        self,
        message_id: str,
        *,
        content: Any = _UNSET,
        components: Any = _UNSET,
    ) -> dict[str, Any]:
        return await self._rest.edit_interaction_message(
            application_id=self.application_id,
            interaction_token=self.token,
            message_id=message_id,
            payload=build_message_payload(content, components=components),
        )

    async def follow_up(
        self,
        content: Any = _UNSET,
        *,
        components: Any = _UNSET,
        ephemeral: bool = False,
    ) -> dict[str, Any]:
        return await self._rest.create_followup_message(
            application_id=self.application_id,
            interaction_token=self.token,
            payload=build_message_payload(
                content, components=components, ephemeral=ephemeral
            ),
        )
