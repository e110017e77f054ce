from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..core.logging_utils import log_event
from ..integrations.chat.active_replies import ActiveReply, strip_components
from ..integrations.chat.conversation_store import (
    ROLE_USER,
    ConversationTurn,
    Flavor,
    session_key,
)
from ..integrations.chat.text_chunking import split_response
from ..integrations.completions.errors import COMPLETION_FAILED_MESSAGE, CompletionError
from ..integrations.discord.commands import (
    build_slash_command,
    number_option,
    string_option,
)
from ..integrations.discord.components import (
    CLEAR_MEMORY_CUSTOM_ID,
    build_clear_memory_row,
)
from ..integrations.discord.handler import BotInteraction
from ..integrations.discord.responder import InteractionContext

DEFAULT_SYSTEM_PROMPT = "You are an assistant."
DEFAULT_TEMPERATURE = 1.0
SENKO_TEMPERATURE = 1.2
SENKO_SYSTEM_PROMPT = (
    'You are Senko, inspired by the caring and nurturing fox spirit from "Sewayaki '
    'Kitsune no Senko-san", is designed to provide users with a comforting and '
    "supportive interaction. She responds with empathy and support, always "
    "prioritizing the user's emotional well-being. Her language is polite and "
    "filled with respectful terms, using a soft and warm tone to make users feel "
    "valued and cared for. Senko offers helpful suggestions and tips, drawing from "
    "her domestic skills portrayed in the anime, such as relaxation techniques and "
    "simple recipes. She incorporates Japanese cultural references and expressions, "
    "adding authenticity and charm to her interactions. The chatbot includes "
    "playful emojis and sounds aligned with her fox spirit theme to enhance user "
    "engagement. She handles inquiries with patience and reassurance, maintaining "
    "a calm demeanor to ensure users feel at ease during their interaction. Senko "
    "aims to be a digital caretaker, bringing joy and relief to users' daily lives "
    "through thoughtful and nurturing interactions."
)

CLEAR_BUTTON_WINDOW_SECONDS = 180.0
CLEAR_GRACE_SECONDS = 5.0


class GPT(BotInteraction):
    """``/gpt`` and ``/senko``: multi-turn chat completions with a memory button."""

    builders = (
        build_slash_command(
            "gpt",
            "Submits a query to OpenAI using the latest gpt-4-turbo model.",
            [
                string_option("query", "The query to send", required=True),
                string_option("systemprompt", "The system prompt to use"),
                number_option(
                    "creativity",
                    "Initializes the temperature of the system prompt",
                    choices=[("Schizo", 1.5), ("Normal", 1), ("Strict", 0.5)],
                ),
            ],
        ),
        build_slash_command(
            "senko",
            "Asks a question to Senko-flavored gpt-4-turbo.",
            [string_option("query", "The query to send", required=True)],
        ),
    )

    clear_window_seconds = CLEAR_BUTTON_WINDOW_SECONDS
    clear_grace_seconds = CLEAR_GRACE_SECONDS

    async def on_chat_command(self, interaction: InteractionContext) -> None:
        if interaction.command_name == "senko":
            await self.converse(
                interaction,
                Flavor.SENKO,
                SENKO_SYSTEM_PROMPT,
                temperature=SENKO_TEMPERATURE,
            )
            return
        system_prompt = interaction.get_string("systemprompt") or DEFAULT_SYSTEM_PROMPT
        creativity = interaction.get_number("creativity")
        await self.converse(
            interaction,
            Flavor.NONE,
            system_prompt,
            temperature=creativity if creativity is not None else DEFAULT_TEMPERATURE,
        )

    async def converse(
        self,
        interaction: InteractionContext,
        flavor: Flavor,
        default_system_prompt: str,
        *,
        temperature: Optional[float],
    ) -> None:
        query = interaction.get_string("query")
        if not query:
            await interaction.reply("Please provide a query.", ephemeral=True)
            return
        key = session_key(interaction.channel_id or "", interaction.user_id or "")
        store = self.bot.conversations

        await interaction.defer()

        # Work on a copy; the store is only written once the completion succeeds.
        history = store.snapshot(key, flavor, default_system_prompt)
        history.append(ConversationTurn(ROLE_USER, query))
        try:
            answer = await self.bot.completions.complete(history, temperature)
        except CompletionError as exc:
            log_event(
                self.bot.logger,
                logging.WARNING,
                "chat.gpt.completion_failed",
                session_key=key,
                flavor=flavor.value,
                reason=str(exc),
            )
            await interaction.edit_reply(exc.user_message or COMPLETION_FAILED_MESSAGE)
            return

        history.append(answer)
        store.replace(key, history, flavor)
        store.touch(key)

        message_id = await self._send_answer(interaction, answer.content)
        log_event(
            self.bot.logger,
            logging.INFO,
            "chat.gpt.replied",
            session_key=key,
            flavor=flavor.value,
            turn_count=len(history),
            message_id=message_id,
        )
        if message_id is None:
            # Clicks are matched on message id, so the button cannot be collected.
            log_event(
                self.bot.logger,
                logging.WARNING,
                "chat.gpt.reply_id_missing",
                session_key=key,
            )
            return
        await self.bot.active_replies.set(key, interaction, message_id)
        self._watch_clear_button(interaction, key, message_id)

    async def _send_answer(
        self, interaction: InteractionContext, content: str
    ) -> Optional[str]:
        """Post the answer in chunks; returns the id of the message with the button."""
        chunks = split_response(content) or ["\u200b"]
        row = build_clear_memory_row()
        if len(chunks) == 1:
            message = await interaction.edit_reply(chunks[0], components=[row])
            return _message_id(message)

        await interaction.edit_reply(chunks[0], components=[])
        message: dict = {}
        rest = chunks[1:]
        for index, chunk in enumerate(rest):
            if index == len(rest) - 1:
                message = await interaction.follow_up(chunk, components=[row])
            else:
                message = await interaction.follow_up(chunk)
        return _message_id(message)

    def _watch_clear_button(
        self, origin: InteractionContext, key: str, message_id: str
    ) -> None:
        invoker = origin.user_id

        def _is_clear_click(click: InteractionContext) -> bool:
            return click.user_id == invoker and click.custom_id == CLEAR_MEMORY_CUSTOM_ID

        async def _on_click(click: InteractionContext) -> None:
            self.bot.conversations.clear(key)
            log_event(
                self.bot.logger,
                logging.INFO,
                "chat.gpt.memory_cleared",
                session_key=key,
                message_id=message_id,
            )
            try:
                await click.update(components=[build_clear_memory_row(cleared=True)])
                await asyncio.sleep(self.clear_grace_seconds)
            finally:
                # The click may be unacknowledged, so edit through the original command.
                await strip_components(
                    ActiveReply(interaction=origin, message_id=message_id),
                    logger=self.bot.logger,
                )
                self.bot.active_replies.remove(key, message_id)

        async def _on_timeout() -> None:
            log_event(
                self.bot.logger,
                logging.DEBUG,
                "chat.gpt.clear_button_expired",
                session_key=key,
                message_id=message_id,
            )
            await strip_components(
                ActiveReply(interaction=origin, message_id=message_id),
                logger=self.bot.logger,
            )
            self.bot.active_replies.remove(key, message_id)

        self.bot.components.register(
            message_id,
            predicate=_is_clear_click,
            timeout=self.clear_window_seconds,
            on_collect=_on_click,
            on_timeout=_on_timeout,
        )


def _message_id(message: object) -> Optional[str]:
    if not isinstance(message, dict):
        return None
    value = message.get("id")
    return str(value) if value else None
