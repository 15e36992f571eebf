"""Middleware pipeline.

Middleware components see every turn before the bot logic runs. Each one
receives the turn context and a `logic` callable that continues the chain;
skipping the call short-circuits the turn.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from palaver.models import Activity, ActivityTypes

from .state import BotState, BotStateSet
from .turn_context import TurnContext

logger = logging.getLogger(__name__)

BotCallback = Callable[[TurnContext], Awaitable[Any]]
NextDelegate = Callable[[], Awaitable[Any]]


class Middleware(ABC):
    """Base class for turn middleware."""

    @abstractmethod
    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        """Process the turn, calling `logic` to continue the pipeline.

        Args:
            context: The context for the current turn.
            logic: Continues with the next middleware, then the bot.
        """
        pass


class AnonymousReceiveMiddleware(Middleware):
    """Adapts a plain coroutine function into middleware."""

    def __init__(self, anonymous_handler: Callable[[TurnContext, NextDelegate], Awaitable[Any]]):
        if not callable(anonymous_handler):
            raise TypeError("AnonymousReceiveMiddleware expects a callable handler.")
        self._handler = anonymous_handler

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        return await self._handler(context, logic)


class MiddlewareSet(Middleware):
    """Ordered collection of middleware run as a chain."""

    def __init__(self):
        self._middleware: list[Middleware] = []

    def __len__(self) -> int:
        return len(self._middleware)

    def use(self, *middleware: Middleware) -> "MiddlewareSet":
        """Append middleware to the chain.

        Args:
            *middleware: Objects exposing an async `on_turn(context, logic)`.

        Returns:
            This set, for chaining.
        """
        for item in middleware:
            if not callable(getattr(item, "on_turn", None)):
                raise TypeError(f"Middleware {item!r} does not define on_turn().")
            self._middleware.append(item)
        return self

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        await self.receive_activity_internal(context, None)
        await logic()

    async def receive_activity_with_status(
        self, context: TurnContext, callback: BotCallback | None
    ) -> Any:
        return await self.receive_activity_internal(context, callback)

    async def receive_activity_internal(
        self, context: TurnContext, callback: BotCallback | None, next_index: int = 0
    ) -> Any:
        if next_index == len(self._middleware):
            if callback is not None:
                return await callback(context)
            return None

        current = self._middleware[next_index]

        async def call_next_middleware() -> Any:
            return await self.receive_activity_internal(context, callback, next_index + 1)

        return await current.on_turn(context, call_next_middleware)


class AutoSaveStateMiddleware(Middleware):
    """Saves changes to the registered bot states after the turn completes."""

    def __init__(self, *bot_states: BotState):
        self.bot_state_set = BotStateSet(*bot_states)

    def add(self, bot_state: BotState) -> "AutoSaveStateMiddleware":
        self.bot_state_set.add(bot_state)
        return self

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        await logic()
        await self.bot_state_set.save_all_changes(context, False)


class ShowTypingMiddleware(Middleware):
    """Sends typing indicators while a message turn is being processed.

    Args:
        delay: Seconds to wait before the first typing indicator.
        period: Seconds between subsequent indicators.
    """

    def __init__(self, delay: float = 0.5, period: float = 2.0):
        if delay < 0:
            raise ValueError("delay must be greater than or equal to zero")
        if period <= 0:
            raise ValueError("period must be greater than zero")
        self._delay = delay
        self._period = period

    async def on_turn(self, context: TurnContext, logic: NextDelegate) -> None:
        if context.activity.type != ActivityTypes.MESSAGE or _is_skill_turn(context):
            await logic()
            return

        task = asyncio.create_task(self._send_typing(context))
        try:
            await logic()
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _send_typing(self, context: TurnContext) -> None:
        await asyncio.sleep(self._delay)
        reference = context.activity.get_conversation_reference()
        while True:
            typing = Activity(type=ActivityTypes.TYPING, relates_to=context.activity.relates_to)
            typing.apply_conversation_reference(reference)
            # Bypass the context's send handlers so typing is not logged as a reply.
            await context.adapter.send_activities(context, [typing])
            await asyncio.sleep(self._period)


def _is_skill_turn(context: TurnContext) -> bool:
    from palaver.connector.auth import ClaimsIdentity, SkillValidation

    identity = context.turn_state.get("BotIdentity")
    return isinstance(identity, ClaimsIdentity) and SkillValidation.is_skill_claim(
        identity.claims
    )
