from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, NoReturn, Optional

import typer

from . import __version__
from .bot import create_bot_service
from .core.config import BotConfig, load_bot_config
from .core.exceptions import ConfigError
from .core.logging_utils import setup_rotating_logger
from .handlers import BUILTIN_HANDLERS
from .integrations.discord.command_registry import sync_commands
from .integrations.discord.registry import build_command_payloads
from .integrations.discord.rest import DiscordRestClient

app = typer.Typer(add_completion=False)


def raise_exit(message: str, *, cause: Optional[BaseException] = None) -> NoReturn:
    typer.echo(message, err=True)
    if cause is not None:
        raise typer.Exit(code=1) from cause
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(f"senko-bot {__version__}")
    raise typer.Exit(code=0)


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    return


def _load_config(path: Optional[Path]) -> BotConfig:
    try:
        return load_bot_config(path)
    except ConfigError as exc:
        raise_exit(str(exc), cause=exc)


async def _sync_application_commands(
    config: BotConfig,
    *,
    clear: bool,
    logger: logging.Logger,
    rest_client_factory: Callable[..., Any] = DiscordRestClient,
    sync_func: Callable[..., Awaitable[None]] = sync_commands,
) -> None:
    global_commands, guild_commands = build_command_payloads(
        BUILTIN_HANDLERS, logger=logger
    )
    async with rest_client_factory(bot_token=config.bot_token) as rest:
        await sync_func(
            rest,
            application_id=config.client_id,
            global_commands=global_commands,
            guild_commands=guild_commands,
            guild_ids=config.guild_ids,
            logger=logger,
            clear=clear,
        )


@app.command("start")
def start(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.json (or its directory)"
    ),
) -> None:
    """Connect to the gateway and serve interactions until interrupted."""
    config = _load_config(config_path)
    logger = setup_rotating_logger("senko_bot", config.log)
    service = create_bot_service(config, logger=logger)
    try:
        asyncio.run(service.run_forever())
    except KeyboardInterrupt:
        typer.echo("Goodbye")


@app.command("register-commands")
def register_commands(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.json (or its directory)"
    ),
    clear: bool = typer.Option(
        False, "--clear", help="Remove existing registrations before syncing"
    ),
) -> None:
    """PUT the built-in command schemas to the global and guild endpoints."""
    config = _load_config(config_path)
    try:
        asyncio.run(
            _sync_application_commands(
                config,
                clear=clear,
                logger=logging.getLogger("senko_bot.commands"),
            )
        )
    except (ConfigError, ValueError) as exc:
        raise_exit(str(exc), cause=exc)
    typer.echo("Application commands synchronized.")


def main() -> None:
    """Entrypoint for CLI execution."""
    app()
