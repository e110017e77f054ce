from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from ...core.exceptions import DuplicateCommandError, HandlerLoadError
from ...core.logging_utils import log_event
from .handler import BotInteraction


@dataclass(frozen=True)
class HandlerDescriptor:
    factory: type[BotInteraction]
    invocation_names: frozenset[str]
    guild_only: bool
    builders: tuple[dict[str, Any], ...]

    @property
    def label(self) -> str:
        return self.factory.__name__


@dataclass
class LoadResult:
    loaded: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)


def _entry_label(entry: object) -> str:
    return getattr(entry, "__name__", None) or repr(entry)


def describe_handler(entry: object) -> HandlerDescriptor:
    if not isinstance(entry, type) or not issubclass(entry, BotInteraction):
        raise HandlerLoadError(f"{_entry_label(entry)} is not a BotInteraction")
    builders = tuple(entry.builders or ())
    if not builders:
        raise HandlerLoadError(f"{entry.__name__} declares no command builders")
    names: list[str] = []
    for builder in builders:
        name = builder.get("name") if isinstance(builder, dict) else None
        if not isinstance(name, str) or not name:
            raise HandlerLoadError(f"{entry.__name__} has a builder without a name")
        if name in names:
            raise DuplicateCommandError(name)
        names.append(name)
    return HandlerDescriptor(
        factory=entry,
        invocation_names=frozenset(names),
        guild_only=bool(entry.guild_only),
        builders=builders,
    )


class CommandRegistry:
    """Maps invocation names to constructed handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, BotInteraction] = {}
        self._descriptors: dict[str, HandlerDescriptor] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._handlers))

    def register(self, descriptor: HandlerDescriptor, handler: BotInteraction) -> None:
        for name in sorted(descriptor.invocation_names):
            if name in self._handlers:
                raise DuplicateCommandError(name)
        for name in descriptor.invocation_names:
            self._handlers[name] = handler
            self._descriptors[name] = descriptor

    def get(self, name: Optional[str]) -> Optional[BotInteraction]:
        if not name:
            return None
        return self._handlers.get(name)

    def descriptor(self, name: str) -> Optional[HandlerDescriptor]:
        return self._descriptors.get(name)

    def clear(self) -> None:
        self._handlers.clear()
        self._descriptors.clear()


async def load_handlers(
    entries: Iterable[object],
    *,
    context: Any,
    registry: CommandRegistry,
    logger: logging.Logger,
) -> LoadResult:
    result = LoadResult()
    for entry in entries:
        label = _entry_label(entry)
        try:
            descriptor = describe_handler(entry)
            for name in descriptor.invocation_names:
                if name in registry:
                    raise DuplicateCommandError(name)
            handler = descriptor.factory(context)
            if handler.init is not None:
                await handler.init()
            registry.register(descriptor, handler)
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "discord.handlers.skipped",
                handler=label,
                reason=str(exc),
            )
            result.skipped.append((label, str(exc)))
            continue
        log_event(
            logger,
            logging.DEBUG,
            "discord.handlers.loaded",
            handler=label,
            names=sorted(descriptor.invocation_names),
        )
        result.loaded.extend(sorted(descriptor.invocation_names))
    return result


def build_command_payloads(
    entries: Iterable[object],
    *,
    logger: Optional[logging.Logger] = None,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split handler builders into (global, guild-only) registration payloads."""
    logger = logger or logging.getLogger(__name__)
    seen: set[str] = set()
    global_commands: list[dict[str, Any]] = []
    guild_commands: list[dict[str, Any]] = []
    for entry in entries:
        try:
            descriptor = describe_handler(entry)
            duplicates = sorted(descriptor.invocation_names & seen)
            if duplicates:
                raise DuplicateCommandError(duplicates[0])
        except HandlerLoadError as exc:
            log_event(
                logger,
                logging.WARNING,
                "discord.handlers.skipped",
                handler=_entry_label(entry),
                reason=str(exc),
            )
            continue
        seen.update(descriptor.invocation_names)
        target = guild_commands if descriptor.guild_only else global_commands
        target.extend(dict(builder) for builder in descriptor.builders)
    return global_commands, guild_commands
