from __future__ import annotations

import logging
from typing import Any, Optional

from ...core.logging_utils import log_event
from .collector import ComponentCollector
from .interactions import InteractionKind
from .registry import CommandRegistry
from .responder import InteractionContext, InteractionRestClient

COMMAND_FAILURE_MESSAGE = "An error occurred executing this command."
CONTEXT_MENU_FAILURE_MESSAGE = "An error occurred executing this interaction."

_HOOKS = {
    InteractionKind.COMMAND: "on_chat_command",
    InteractionKind.AUTOCOMPLETE: "on_autocomplete",
    InteractionKind.CONTEXT_MENU: "on_context_menu",
}


class InteractionDispatcher:
    """Routes INTERACTION_CREATE payloads to registered handlers.

    ``handle`` never raises: handler failures are logged and, for commands and
    context menus, answered with a generic ephemeral message.
    """

    def __init__(
        self,
        *,
        registry: CommandRegistry,
        rest: InteractionRestClient,
        application_id: str,
        collector: ComponentCollector,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._registry = registry
        self._rest = rest
        self._application_id = application_id
        self._collector = collector
        self._logger = logger or logging.getLogger(__name__)

    def build_context(self, payload: dict[str, Any]) -> InteractionContext:
        return InteractionContext(
            payload, rest=self._rest, application_id=self._application_id
        )

    async def handle(self, payload: dict[str, Any]) -> None:
        try:
            interaction = self.build_context(payload)
            await self._route(interaction)
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "discord.interaction.dispatch_failed",
                exc=exc,
            )

    async def _route(self, interaction: InteractionContext) -> None:
        if interaction.kind is None:
            log_event(
                self._logger,
                logging.DEBUG,
                "discord.interaction.ignored",
                interaction_type=interaction.payload.get("type"),
            )
            return
        if not interaction.is_complete:
            log_event(
                self._logger,
                logging.WARNING,
                "discord.interaction.incomplete",
                has_id=bool(interaction.interaction_id),
                has_token=bool(interaction.token),
            )
            return

        if interaction.kind is InteractionKind.COMPONENT:
            if not self._collector.feed(interaction):
                log_event(
                    self._logger,
                    logging.DEBUG,
                    "discord.component.uncollected",
                    custom_id=interaction.custom_id,
                    message_id=interaction.message_id,
                    user_id=interaction.user_id,
                )
            return

        handler = self._registry.get(interaction.command_name)
        if handler is None:
            log_event(
                self._logger,
                logging.ERROR,
                "discord.interaction.unknown_command",
                command=interaction.command_name,
                kind=interaction.kind.value,
            )
            return

        hook = getattr(handler, _HOOKS[interaction.kind], None)
        if hook is None:
            log_event(
                self._logger,
                logging.DEBUG,
                "discord.interaction.unsupported",
                command=interaction.command_name,
                kind=interaction.kind.value,
            )
            return

        try:
            await hook(interaction)
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "discord.interaction.handler_failed",
                command=interaction.command_name,
                kind=interaction.kind.value,
                channel_id=interaction.channel_id,
                user_id=interaction.user_id,
                exc=exc,
            )
            if interaction.kind is InteractionKind.AUTOCOMPLETE:
                return
            message = (
                CONTEXT_MENU_FAILURE_MESSAGE
                if interaction.kind is InteractionKind.CONTEXT_MENU
                else COMMAND_FAILURE_MESSAGE
            )
            await self._notify_failure(interaction, message)

    async def _notify_failure(self, interaction: InteractionContext, message: str) -> None:
        try:
            if interaction.replied or interaction.deferred:
                await interaction.follow_up(message, ephemeral=True)
            else:
                await interaction.reply(message, ephemeral=True)
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "discord.interaction.notify_failed",
                command=interaction.command_name,
                exc=exc,
            )
