from __future__ import annotations

import logging
from typing import Any, Protocol

from ...core.logging_utils import log_event


class CommandSyncRestClient(Protocol):
    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict[str, Any]],
        guild_id: str | None = None,
    ) -> list[dict[str, Any]]: ...


def _normalize_guild_ids(guild_ids: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(sorted({guild_id.strip() for guild_id in guild_ids if guild_id.strip()}))


async def _overwrite(
    rest: CommandSyncRestClient,
    *,
    application_id: str,
    commands: list[dict[str, Any]],
    guild_id: str | None,
    logger: logging.Logger,
    event: str,
) -> None:
    updated = await rest.bulk_overwrite_application_commands(
        application_id=application_id,
        guild_id=guild_id,
        commands=commands,
    )
    log_event(
        logger,
        logging.INFO,
        event,
        scope="global" if guild_id is None else "guild",
        guild_id=guild_id,
        application_id=application_id,
        command_count=len(commands),
        updated_count=len(updated),
    )


async def clear_commands(
    rest: CommandSyncRestClient,
    *,
    application_id: str,
    guild_ids: tuple[str, ...],
    logger: logging.Logger,
) -> None:
    await _overwrite(
        rest,
        application_id=application_id,
        commands=[],
        guild_id=None,
        logger=logger,
        event="discord.commands.sync.cleared",
    )
    for guild_id in _normalize_guild_ids(guild_ids):
        await _overwrite(
            rest,
            application_id=application_id,
            commands=[],
            guild_id=guild_id,
            logger=logger,
            event="discord.commands.sync.cleared",
        )


async def sync_commands(
    rest: CommandSyncRestClient,
    *,
    application_id: str,
    global_commands: list[dict[str, Any]],
    guild_commands: list[dict[str, Any]],
    guild_ids: tuple[str, ...],
    logger: logging.Logger,
    clear: bool = False,
) -> None:
    """PUT the full schema set: global commands once, guild-only ones per guild."""
    if not application_id.strip():
        raise ValueError("application_id is required to sync commands")
    normalized_guild_ids = _normalize_guild_ids(guild_ids)
    if guild_commands and not normalized_guild_ids:
        raise ValueError("guild-only commands require at least one guild_id")

    if clear:
        await clear_commands(
            rest,
            application_id=application_id,
            guild_ids=normalized_guild_ids,
            logger=logger,
        )

    await _overwrite(
        rest,
        application_id=application_id,
        commands=global_commands,
        guild_id=None,
        logger=logger,
        event="discord.commands.sync.overwrite",
    )
    for guild_id in normalized_guild_ids:
        await _overwrite(
            rest,
            application_id=application_id,
            commands=guild_commands,
            guild_id=guild_id,
            logger=logger,
            event="discord.commands.sync.overwrite",
        )
