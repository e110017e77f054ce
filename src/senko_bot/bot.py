from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .core.config import BotConfig
from .core.logging_utils import log_event
from .integrations.chat.active_replies import ActiveReplyTracker
from .integrations.chat.conversation_store import ConversationStore
from .integrations.completions.client import CompletionClient
from .integrations.discord.collector import ComponentCollector
from .integrations.discord.dispatcher import InteractionDispatcher
from .integrations.discord.gateway import DiscordGatewayClient
from .integrations.discord.registry import CommandRegistry, LoadResult, load_handlers
from .integrations.discord.rest import DiscordRestClient


@dataclass
class BotContext:
    """State shared by handler invocations for one running bot.

    Handlers reach conversations and active replies only through this object;
    per-session access goes through the store and tracker APIs.
    """

    config: BotConfig
    rest: Any
    conversations: ConversationStore
    active_replies: ActiveReplyTracker
    components: ComponentCollector
    completions: Any
    logger: logging.Logger
    latency: Callable[[], Optional[float]] = lambda: None


class BotService:
    def __init__(
        self,
        config: BotConfig,
        *,
        logger: logging.Logger,
        handlers: Optional[Iterable[object]] = None,
        rest_client: Optional[Any] = None,
        gateway_client: Optional[DiscordGatewayClient] = None,
        completion_client: Optional[Any] = None,
    ) -> None:
        if handlers is None:
            from .handlers import BUILTIN_HANDLERS

            handlers = BUILTIN_HANDLERS
        self._config = config
        self._logger = logger
        self._handler_entries = tuple(handlers)

        self._rest = (
            rest_client
            if rest_client is not None
            else DiscordRestClient(bot_token=config.bot_token)
        )
        self._owns_rest = rest_client is None
        self._gateway = (
            gateway_client
            if gateway_client is not None
            else DiscordGatewayClient(
                bot_token=config.bot_token,
                intents=config.intents,
                logger=logger,
            )
        )
        self._owns_gateway = gateway_client is None
        self._completions = (
            completion_client
            if completion_client is not None
            else CompletionClient(
                api_key=config.openai_api_key,
                model=config.openai_model,
                base_url=config.openai_base_url,
                logger=logger,
            )
        )
        self._owns_completions = completion_client is None

        self._collector = ComponentCollector(logger=logger)
        self.context = BotContext(
            config=config,
            rest=self._rest,
            conversations=ConversationStore(logger=logger),
            active_replies=ActiveReplyTracker(logger=logger),
            components=self._collector,
            completions=self._completions,
            logger=logger,
            latency=lambda: self._gateway.latency,
        )
        self.registry = CommandRegistry()
        self.dispatcher = InteractionDispatcher(
            registry=self.registry,
            rest=self._rest,
            application_id=config.client_id,
            collector=self._collector,
            logger=logger,
        )
        self._loaded = False
        self._tasks: set[asyncio.Task[None]] = set()

    async def load_interactions(self) -> LoadResult:
        result = await load_handlers(
            self._handler_entries,
            context=self.context,
            registry=self.registry,
            logger=self._logger,
        )
        self._loaded = True
        log_event(
            self._logger,
            logging.INFO,
            "discord.handlers.ready",
            names=result.loaded,
            skipped=len(result.skipped),
        )
        return result

    async def run_forever(self) -> None:
        log_event(
            self._logger,
            logging.INFO,
            "discord.bot.starting",
            client_id=self._config.client_id,
        )
        try:
            await self._gateway.run(self.on_dispatch)
        finally:
            await self.shutdown()

    async def on_dispatch(self, event_type: str, payload: dict[str, Any]) -> None:
        if event_type == "READY":
            log_event(self._logger, logging.INFO, "discord.bot.ready")
            if not self._loaded:
                await self.load_interactions()
            return
        if event_type == "INTERACTION_CREATE":
            # Handle each interaction in its own task so a slow completion does
            # not stall the gateway reader.
            task = asyncio.create_task(self.dispatcher.handle(payload))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._collector.wait_idle()

    async def shutdown(self) -> None:
        log_event(self._logger, logging.INFO, "discord.bot.stopping")
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._collector.close()
        self.context.conversations.close()
        if self._owns_completions:
            with contextlib.suppress(Exception):
                await self._completions.close()
        if self._owns_rest:
            with contextlib.suppress(Exception):
                await self._rest.close()
        if self._owns_gateway:
            with contextlib.suppress(Exception):
                await self._gateway.stop()


def create_bot_service(config: BotConfig, *, logger: logging.Logger) -> BotService:
    return BotService(config, logger=logger)
