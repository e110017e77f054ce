"""Component-click collection scoped to a single message.

A registration pairs a predicate, a timeout and two continuations. Whichever
of "matching click" or "timeout" happens first wins; the registration is
removed before its continuation runs so the other can never fire.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ...core.logging_utils import log_event
from .responder import InteractionContext

ComponentPredicate = Callable[[InteractionContext], bool]
CollectCallback = Callable[[InteractionContext], Awaitable[None]]
TimeoutCallback = Callable[[], Awaitable[None]]


@dataclass(eq=False)
class PendingCollector:
    message_id: str
    predicate: ComponentPredicate
    on_collect: CollectCallback
    on_timeout: Optional[TimeoutCallback]
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)
    resolved: bool = False


class ComponentCollector:
    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._pending: dict[str, list[PendingCollector]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def __len__(self) -> int:
        return sum(len(items) for items in self._pending.values())

    def is_pending(self, message_id: str) -> bool:
        return bool(self._pending.get(message_id))

    def register(
        self,
        message_id: str,
        *,
        predicate: ComponentPredicate,
        timeout: float,
        on_collect: CollectCallback,
        on_timeout: Optional[TimeoutCallback] = None,
    ) -> PendingCollector:
        if not message_id:
            raise ValueError("message_id is required to collect components")
        pending = PendingCollector(
            message_id=message_id,
            predicate=predicate,
            on_collect=on_collect,
            on_timeout=on_timeout,
        )
        loop = asyncio.get_running_loop()
        pending.timer = loop.call_later(timeout, self._expire, pending)
        self._pending.setdefault(message_id, []).append(pending)
        return pending

    def cancel(self, pending: PendingCollector) -> bool:
        """Drop a registration without running either continuation."""
        return self._detach(pending)

    def feed(self, interaction: InteractionContext) -> bool:
        """Offer a component interaction; returns True when a collector took it."""
        message_id = interaction.message_id
        if not message_id:
            return False
        for pending in list(self._pending.get(message_id, ())):
            try:
                accepted = pending.predicate(interaction)
            except Exception as exc:
                log_event(
                    self._logger,
                    logging.WARNING,
                    "discord.collector.predicate_failed",
                    message_id=message_id,
                    exc=exc,
                )
                continue
            if not accepted:
                continue
            if not self._detach(pending):
                continue
            self._spawn(pending.on_collect(interaction), "collect", message_id)
            return True
        return False

    async def close(self) -> None:
        for items in list(self._pending.values()):
            for pending in list(items):
                self._detach(pending)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _expire(self, pending: PendingCollector) -> None:
        if not self._detach(pending):
            return
        if pending.on_timeout is not None:
            self._spawn(pending.on_timeout(), "timeout", pending.message_id)

    def _detach(self, pending: PendingCollector) -> bool:
        if pending.resolved:
            return False
        pending.resolved = True
        if pending.timer is not None:
            pending.timer.cancel()
        items = self._pending.get(pending.message_id)
        if items is not None:
            if pending in items:
                items.remove(pending)
            if not items:
                self._pending.pop(pending.message_id, None)
        return True

    def _spawn(self, coro: Awaitable[None], phase: str, message_id: str) -> None:
        async def _runner() -> None:
            try:
                await coro
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log_event(
                    self._logger,
                    logging.ERROR,
                    "discord.collector.continuation_failed",
                    phase=phase,
                    message_id=message_id,
                    exc=exc,
                )

        task = asyncio.get_running_loop().create_task(_runner())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
