"""Activity handler: dispatches a turn to per-activity-type methods.

Subclass and override the `on_*` methods for the activities a bot cares
about; everything else is ignored.
"""

import logging
from typing import Any

from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    InvokeResponse,
    MessageReaction,
)

from .adapter import BotAdapter
from .turn_context import TurnContext

logger = logging.getLogger(__name__)


class InvokeResponseError(Exception):
    """Raised by invoke handlers to produce a non-200 invoke response."""

    def __init__(self, status_code: int, body: Any = None):
        self.status_code = status_code
        self.body = body
        self.retryable = False
        super().__init__(f"Invoke failed with status {status_code}")

    def create_invoke_response(self) -> InvokeResponse:
        return InvokeResponse(status=self.status_code, body=self.body)


class ActivityHandler:
    """Bot implementation that routes each activity type to a handler method."""

    async def on_turn(self, turn_context: TurnContext) -> None:
        if turn_context is None:
            raise TypeError("ActivityHandler.on_turn(): turn_context cannot be None.")
        if turn_context.activity is None:
            raise TypeError("ActivityHandler.on_turn(): turn_context must have a non-None activity.")
        if not turn_context.activity.type:
            raise TypeError("ActivityHandler.on_turn(): turn_context activity must have a non-None type.")

        activity_type = turn_context.activity.type
        if activity_type == ActivityTypes.MESSAGE:
            await self.on_message_activity(turn_context)
        elif activity_type == ActivityTypes.CONVERSATION_UPDATE:
            await self.on_conversation_update_activity(turn_context)
        elif activity_type == ActivityTypes.MESSAGE_REACTION:
            await self.on_message_reaction_activity(turn_context)
        elif activity_type == ActivityTypes.EVENT:
            await self.on_event_activity(turn_context)
        elif activity_type == ActivityTypes.INVOKE:
            invoke_response = await self.on_invoke_activity(turn_context)
            # A handler may already have sent its own invoke response.
            if invoke_response is not None and BotAdapter.INVOKE_RESPONSE_KEY not in turn_context.turn_state:
                await turn_context.send_activity(
                    Activity(type=ActivityTypes.INVOKE_RESPONSE, value=invoke_response)
                )
        elif activity_type == ActivityTypes.END_OF_CONVERSATION:
            await self.on_end_of_conversation_activity(turn_context)
        elif activity_type == ActivityTypes.TYPING:
            await self.on_typing_activity(turn_context)
        elif activity_type == ActivityTypes.INSTALLATION_UPDATE:
            await self.on_installation_update(turn_context)
        elif activity_type == ActivityTypes.COMMAND:
            await self.on_command_activity(turn_context)
        elif activity_type == ActivityTypes.COMMAND_RESULT:
            await self.on_command_result_activity(turn_context)
        else:
            await self.on_unrecognized_activity_type(turn_context)

    async def on_message_activity(self, turn_context: TurnContext) -> None:
        return

    async def on_conversation_update_activity(self, turn_context: TurnContext) -> None:
        """Call the members added/removed handlers for members other than the bot."""
        activity = turn_context.activity
        recipient_id = activity.recipient.id if activity.recipient else None

        if activity.members_added and any(m.id != recipient_id for m in activity.members_added):
            await self.on_members_added_activity(activity.members_added, turn_context)
        elif activity.members_removed and any(m.id != recipient_id for m in activity.members_removed):
            await self.on_members_removed_activity(activity.members_removed, turn_context)

    async def on_members_added_activity(
        self, members_added: list[ChannelAccount], turn_context: TurnContext
    ) -> None:
        return

    async def on_members_removed_activity(
        self, members_removed: list[ChannelAccount], turn_context: TurnContext
    ) -> None:
        return

    async def on_message_reaction_activity(self, turn_context: TurnContext) -> None:
        activity = turn_context.activity
        if activity.reactions_added:
            await self.on_reactions_added(activity.reactions_added, turn_context)
        if activity.reactions_removed:
            await self.on_reactions_removed(activity.reactions_removed, turn_context)

    async def on_reactions_added(
        self, message_reactions: list[MessageReaction], turn_context: TurnContext
    ) -> None:
        return

    async def on_reactions_removed(
        self, message_reactions: list[MessageReaction], turn_context: TurnContext
    ) -> None:
        return

    async def on_event_activity(self, turn_context: TurnContext) -> None:
        if turn_context.activity.name == "tokens/response":
            return await self.on_token_response_event(turn_context)
        return await self.on_event(turn_context)

    async def on_token_response_event(self, turn_context: TurnContext) -> None:
        return

    async def on_event(self, turn_context: TurnContext) -> None:
        return

    async def on_end_of_conversation_activity(self, turn_context: TurnContext) -> None:
        return

    async def on_typing_activity(self, turn_context: TurnContext) -> None:
        return

    async def on_installation_update(self, turn_context: TurnContext) -> None:
        action = (turn_context.activity.action or "").lower()
        if action in ("add", "add-upgrade"):
            return await self.on_installation_update_add(turn_context)
        if action in ("remove", "remove-upgrade"):
            return await self.on_installation_update_remove(turn_context)
        return None

    async def on_installation_update_add(self, turn_context: TurnContext) -> None:
        return

    async def on_installation_update_remove(self, turn_context: TurnContext) -> None:
        return

    async def on_command_activity(self, turn_context: TurnContext) -> None:
        return

    async def on_command_result_activity(self, turn_context: TurnContext) -> None:
        return

    async def on_unrecognized_activity_type(self, turn_context: TurnContext) -> None:
        return

    async def on_invoke_activity(self, turn_context: TurnContext) -> InvokeResponse | None:
        """Handle an invoke; unhandled invoke names produce a 501 response."""
        try:
            if turn_context.activity.name == "adaptiveCard/action":
                invoke_value = self._get_adaptive_card_invoke_value(turn_context.activity)
                result = await self.on_adaptive_card_invoke(turn_context, invoke_value)
                return self._create_invoke_response(result)
            raise InvokeResponseError(501)
        except InvokeResponseError as error:
            logger.debug("Invoke %s returned %s", turn_context.activity.name, error.status_code)
            return error.create_invoke_response()

    async def on_adaptive_card_invoke(self, turn_context: TurnContext, invoke_value: dict) -> Any:
        raise InvokeResponseError(501)

    @staticmethod
    def _get_adaptive_card_invoke_value(activity: Activity) -> dict:
        value = activity.value
        if not isinstance(value, dict):
            raise InvokeResponseError(400, {"code": "BadRequest", "message": "Missing value property"})
        action = value.get("action")
        if not isinstance(action, dict) or action.get("type") != "Action.Execute":
            raise InvokeResponseError(
                400,
                {"code": "NotSupported", "message": "The action type is not supported."},
            )
        return value

    @staticmethod
    def _create_invoke_response(body: Any = None) -> InvokeResponse:
        return InvokeResponse(status=200, body=body)
