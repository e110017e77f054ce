from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from ..core.logging_utils import log_event
from ..integrations.discord.commands import build_slash_command
from ..integrations.discord.handler import BotInteraction
from ..integrations.discord.responder import InteractionContext

DISCORD_STATUS_URL = "https://discordstatus.com/metrics-display/5k2rt9f7pmny/day.json"
OPENAI_STATUS_URL = "https://status.openai.com/api/v2/status.json"
STATUS_CACHE_SECONDS = 60.0
STATUS_TIMEOUT_SECONDS = 10.0

FETCH_FAILED_MESSAGE = (
    "Failed to fetch one or more API statuses.\n\n"
    f"Dataset: [Discord](<{DISCORD_STATUS_URL}>), [OpenAI](<{OPENAI_STATUS_URL}>)"
)


class StatusFetchError(Exception):
    pass


@dataclass
class StatusSnapshot:
    discord_ping_ms: Optional[int] = None
    openai_status: str = ""


class StatusCache:
    """Public status feeds, fetched at most once per ``ttl_seconds``.

    A feed that answers with an error keeps its previously cached value. A
    transport failure raises ``StatusFetchError`` and leaves the cache stale so
    the next call retries.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        ttl_seconds: float = STATUS_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)
        self._fetched_at: Optional[float] = None
        self._snapshot = StatusSnapshot()

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    def is_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at <= self._ttl_seconds

    async def refresh(self) -> StatusSnapshot:
        if self.is_fresh():
            return self._snapshot
        if self._client is not None:
            discord_res, openai_res = await self._fetch_all(self._client)
        else:
            async with httpx.AsyncClient(timeout=STATUS_TIMEOUT_SECONDS) as client:
                discord_res, openai_res = await self._fetch_all(client)
        self._fetched_at = self._clock()

        discord_payload = _json_or_none(discord_res)
        mean = _dig(discord_payload, "summary", "mean")
        if isinstance(mean, (int, float)) and not isinstance(mean, bool):
            self._snapshot.discord_ping_ms = round(mean)
        openai_payload = _json_or_none(openai_res)
        description = _dig(openai_payload, "status", "description")
        if isinstance(description, str):
            self._snapshot.openai_status = description
        return self._snapshot

    async def _fetch_all(
        self, client: httpx.AsyncClient
    ) -> tuple[httpx.Response, httpx.Response]:
        # Both requests settle before the client can be closed under either one.
        results = await asyncio.gather(
            client.get(DISCORD_STATUS_URL),
            client.get(OPENAI_STATUS_URL),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, httpx.HTTPError):
                log_event(
                    self._logger,
                    logging.WARNING,
                    "ping.status.fetch_failed",
                    exc=result,
                )
                raise StatusFetchError(str(result)) from result
            if isinstance(result, BaseException):
                raise result
        discord_res, openai_res = results
        return discord_res, openai_res


def _json_or_none(response: httpx.Response) -> Any:
    if not response.is_success:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _dig(payload: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(payload, dict):
            return None
        payload = payload.get(key)
    return payload


def format_status(latency_seconds: Optional[float], snapshot: StatusSnapshot) -> str:
    client_ping = (
        "N/A (retry in a minute)"
        if latency_seconds is None
        else f"{round(latency_seconds * 1000)}ms"
    )
    discord_ping = (
        "N/A (failed)"
        if snapshot.discord_ping_ms is None
        else f"{snapshot.discord_ping_ms}ms"
    )
    return (
        f"Client WebSocket ping: `{client_ping}`\n"
        f"Discord API ping: `{discord_ping}`\n"
        f"OpenAI status: `{snapshot.openai_status}`"
    )


class Ping(BotInteraction):
    builders = (
        build_slash_command(
            "ping",
            "Gets the ping of the client, Discord's API, and OpenAI's API",
        ),
    )

    def __init__(self, bot: Any) -> None:
        super().__init__(bot)
        self.status = StatusCache(logger=bot.logger)

    async def on_chat_command(self, interaction: InteractionContext) -> None:
        try:
            snapshot = await self.status.refresh()
        except StatusFetchError:
            await interaction.reply(FETCH_FAILED_MESSAGE)
            return
        await interaction.reply(format_status(self.bot.latency(), snapshot))
