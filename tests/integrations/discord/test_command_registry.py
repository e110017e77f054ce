from __future__ import annotations

import logging

import pytest

from senko_bot.integrations.discord.command_registry import (
    clear_commands,
    sync_commands,
)


class _FakeRest:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def bulk_overwrite_application_commands(
        self,
        *,
        application_id: str,
        commands: list[dict],
        guild_id: str | None = None,
    ) -> list[dict]:
        self.calls.append(
            {
                "application_id": application_id,
                "guild_id": guild_id,
                "commands": commands,
            }
        )
        return commands


@pytest.mark.anyio
async def test_sync_commands_without_guilds_overwrites_global_once() -> None:
    rest = _FakeRest()

    await sync_commands(
        rest,
        application_id="app-1",
        global_commands=[{"name": "gpt"}],
        guild_commands=[],
        guild_ids=(),
        logger=logging.getLogger("test"),
    )

    assert rest.calls == [
        {"application_id": "app-1", "guild_id": None, "commands": [{"name": "gpt"}]}
    ]


@pytest.mark.anyio
async def test_sync_commands_puts_guild_only_commands_to_each_guild() -> None:
    rest = _FakeRest()

    await sync_commands(
        rest,
        application_id="app-1",
        global_commands=[{"name": "gpt"}],
        guild_commands=[{"name": "admin"}],
        guild_ids=("guild-b", "guild-a", "guild-b"),
        logger=logging.getLogger("test"),
    )

    assert [(call["guild_id"], call["commands"]) for call in rest.calls] == [
        (None, [{"name": "gpt"}]),
        ("guild-a", [{"name": "admin"}]),
        ("guild-b", [{"name": "admin"}]),
    ]


@pytest.mark.anyio
async def test_sync_commands_clear_empties_every_scope_first() -> None:
    rest = _FakeRest()

    await sync_commands(
        rest,
        application_id="app-1",
        global_commands=[{"name": "ping"}],
        guild_commands=[],
        guild_ids=("guild-a",),
        logger=logging.getLogger("test"),
        clear=True,
    )

    assert [(call["guild_id"], call["commands"]) for call in rest.calls] == [
        (None, []),
        ("guild-a", []),
        (None, [{"name": "ping"}]),
        ("guild-a", []),
    ]


@pytest.mark.anyio
async def test_sync_commands_guild_only_requires_guild_ids() -> None:
    rest = _FakeRest()

    with pytest.raises(ValueError, match="guild_id"):
        await sync_commands(
            rest,
            application_id="app-1",
            global_commands=[],
            guild_commands=[{"name": "admin"}],
            guild_ids=(" ",),
            logger=logging.getLogger("test"),
        )

    assert rest.calls == []


@pytest.mark.anyio
async def test_sync_commands_requires_application_id() -> None:
    rest = _FakeRest()

    with pytest.raises(ValueError, match="application_id"):
        await sync_commands(
            rest,
            application_id="  ",
            global_commands=[{"name": "gpt"}],
            guild_commands=[],
            guild_ids=(),
            logger=logging.getLogger("test"),
        )


@pytest.mark.anyio
async def test_clear_commands_hits_global_and_each_guild() -> None:
    rest = _FakeRest()

    await clear_commands(
        rest,
        application_id="app-1",
        guild_ids=("g-2", "g-1"),
        logger=logging.getLogger("test"),
    )

    assert [call["guild_id"] for call in rest.calls] == [None, "g-1", "g-2"]
    assert all(call["commands"] == [] for call in rest.calls)
