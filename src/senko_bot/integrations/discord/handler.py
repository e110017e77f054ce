from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, ClassVar, Optional

from .responder import InteractionContext

if TYPE_CHECKING:
    from ...bot import BotContext

InteractionHook = Callable[[InteractionContext], Awaitable[None]]
InitHook = Callable[[], Awaitable[None]]


class BotInteraction:
    """Base class for interaction handlers.

    Subclasses declare their registration payloads in ``builders`` and
    implement whichever hooks they support as ``async`` methods. Hooks left as
    ``None`` are treated as unsupported and skipped by the dispatcher.
    """

    builders: ClassVar[tuple[dict[str, Any], ...]] = ()
    guild_only: ClassVar[bool] = False

    init: Optional[InitHook] = None
    on_chat_command: Optional[InteractionHook] = None
    on_autocomplete: Optional[InteractionHook] = None
    on_context_menu: Optional[InteractionHook] = None

    def __init__(self, bot: "BotContext") -> None:
        self.bot = bot
