"""Bot adapter base class.

An adapter connects the bot to a channel: it turns inbound activities into
TurnContext objects, runs them through the middleware pipeline and sends
the bot's outgoing activities back to the channel.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from palaver.infrastructure.correlation import activity_scope
from palaver.infrastructure.metrics import record_turn, record_turn_error, turns_in_progress
from palaver.models import Activity, ConversationReference, ResourceResponse

from .middleware import BotCallback, Middleware, MiddlewareSet
from .turn_context import TurnContext

logger = logging.getLogger(__name__)

OnTurnErrorHandler = Callable[[TurnContext, Exception], Awaitable[Any]]


class BotAdapter(ABC):
    """Abstract base class for channel adapters."""

    BOT_IDENTITY_KEY = "BotIdentity"
    OAUTH_SCOPE_KEY = "OAuthScope"
    INVOKE_RESPONSE_KEY = "palaver.invoke_response"

    def __init__(self, on_turn_error: OnTurnErrorHandler | None = None):
        self._middleware = MiddlewareSet()
        self.on_turn_error = on_turn_error

    @abstractmethod
    async def send_activities(
        self, context: TurnContext, activities: list[Activity]
    ) -> list[ResourceResponse]:
        """Send activities to the channel.

        Args:
            context: The context for the current turn.
            activities: Activities to send, already addressed.

        Returns:
            One resource response per activity.
        """
        pass

    @abstractmethod
    async def update_activity(self, context: TurnContext, activity: Activity) -> ResourceResponse | None:
        """Replace an existing activity in the conversation.

        Args:
            context: The context for the current turn.
            activity: New version of the activity; its id names the one to replace.
        """
        pass

    @abstractmethod
    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        """Delete an existing activity.

        Args:
            context: The context for the current turn.
            reference: Reference whose activity_id names the activity to delete.
        """
        pass

    def use(self, middleware: Middleware) -> "BotAdapter":
        """Register middleware; returns the adapter for chaining."""
        self._middleware.use(middleware)
        return self

    @property
    def middleware(self) -> MiddlewareSet:
        return self._middleware

    async def continue_conversation(
        self,
        reference: ConversationReference,
        callback: BotCallback,
        bot_id: str | None = None,
        claims_identity: Any = None,
        audience: str | None = None,
    ) -> Any:
        """Resume a conversation proactively.

        Args:
            reference: Reference to the conversation to continue.
            callback: Bot logic to run for the continuation turn.
            bot_id: Application id of the bot.
            claims_identity: Identity to place in turn state.
            audience: OAuth scope of the outgoing calls.
        """
        if reference is None:
            raise TypeError("continue_conversation(): reference cannot be None")
        context = TurnContext(self, reference.get_continuation_activity())
        if claims_identity is not None:
            context.turn_state[self.BOT_IDENTITY_KEY] = claims_identity
        if audience:
            context.turn_state[self.OAUTH_SCOPE_KEY] = audience
        return await self.run_pipeline(context, callback)

    async def run_pipeline(self, context: TurnContext, callback: BotCallback | None = None) -> Any:
        """Run middleware and then the bot callback for one turn.

        Exceptions raised during the turn are passed to `on_turn_error` when
        it is set and re-raised otherwise.
        """
        if context is None:
            raise TypeError("run_pipeline(): context cannot be None")

        activity = context.activity
        if activity is None:
            if callback is not None:
                return await callback(context)
            return None

        if activity.locale:
            context.locale = activity.locale

        with activity_scope(activity):
            start = time.perf_counter()
            turns_in_progress.inc()
            try:
                return await self._middleware.receive_activity_with_status(context, callback)
            except Exception as error:
                record_turn_error(activity.channel_id, error)
                if self.on_turn_error is None:
                    raise
                logger.debug("Routing turn error to on_turn_error: %s", error)
                await self.on_turn_error(context, error)
                return None
            finally:
                turns_in_progress.dec()
                record_turn(activity.channel_id, activity.type, time.perf_counter() - start)
