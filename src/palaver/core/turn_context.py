"""Per-turn context object.

A TurnContext wraps one inbound activity together with the adapter that
received it. Bots send, update and delete activities through the context;
middleware can intercept those operations by registering handlers.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from palaver.models import (
    Activity,
    ActivityTypes,
    ConversationReference,
    DeliveryModes,
    InputHints,
    Mention,
    ResourceResponse,
)

if TYPE_CHECKING:
    from .adapter import BotAdapter

# Handler signatures: (context, payload, next) -> awaitable result
SendActivitiesHandler = Callable[
    ["TurnContext", list[Activity], Callable[[], Awaitable[list[ResourceResponse]]]],
    Awaitable[list[ResourceResponse]],
]
UpdateActivityHandler = Callable[
    ["TurnContext", Activity, Callable[[], Awaitable[ResourceResponse | None]]],
    Awaitable[ResourceResponse | None],
]
DeleteActivityHandler = Callable[
    ["TurnContext", ConversationReference, Callable[[], Awaitable[None]]],
    Awaitable[None],
]

TURN_LOCALE_KEY = "turn.locale"


class TurnContext:
    """Context for a single turn of conversation."""

    def __init__(self, adapter: BotAdapter, activity: Activity):
        if adapter is None:
            raise TypeError("TurnContext must be created with an adapter.")
        if activity is None:
            raise TypeError("TurnContext must be created with an activity.")

        self._adapter = adapter
        self._activity = activity
        self._turn_state: dict[Any, Any] = {}
        self._responded = False
        self._on_send_activities: list[SendActivitiesHandler] = []
        self._on_update_activity: list[UpdateActivityHandler] = []
        self._on_delete_activity: list[DeleteActivityHandler] = []
        self.buffered_reply_activities: list[Activity] = []

    @property
    def adapter(self) -> BotAdapter:
        return self._adapter

    @property
    def activity(self) -> Activity:
        return self._activity

    @property
    def turn_state(self) -> dict[Any, Any]:
        """Scratch space shared by middleware, state and dialogs for this turn."""
        return self._turn_state

    @property
    def responded(self) -> bool:
        """True once a non-trace activity has been sent during this turn."""
        return self._responded

    @responded.setter
    def responded(self, value: bool) -> None:
        if not value:
            raise ValueError("TurnContext.responded can only be set to True.")
        self._responded = True

    @property
    def locale(self) -> str | None:
        return self._turn_state.get(TURN_LOCALE_KEY)

    @locale.setter
    def locale(self, value: str | None) -> None:
        if value:
            self._turn_state[TURN_LOCALE_KEY] = value
        else:
            self._turn_state.pop(TURN_LOCALE_KEY, None)

    # -------------------------------------------------------------------------
    # Handler registration
    # -------------------------------------------------------------------------

    def on_send_activities(self, handler: SendActivitiesHandler) -> TurnContext:
        """Register a handler called whenever activities are sent."""
        if handler is None:
            raise TypeError("handler")
        self._on_send_activities.append(handler)
        return self

    def on_update_activity(self, handler: UpdateActivityHandler) -> TurnContext:
        if handler is None:
            raise TypeError("handler")
        self._on_update_activity.append(handler)
        return self

    def on_delete_activity(self, handler: DeleteActivityHandler) -> TurnContext:
        if handler is None:
            raise TypeError("handler")
        self._on_delete_activity.append(handler)
        return self

    # -------------------------------------------------------------------------
    # Outgoing operations
    # -------------------------------------------------------------------------

    async def send_activity(
        self,
        activity_or_text: Activity | str,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> ResourceResponse:
        """Send a single activity, or a message built from text.

        Args:
            activity_or_text: The activity, or the text of a message activity.
            speak: Optional SSML for the message.
            input_hint: Optional input hint for the message.

        Returns:
            The channel's resource response; empty if a handler suppressed the send.
        """
        if isinstance(activity_or_text, str):
            if not activity_or_text:
                raise ValueError("Text to send must not be empty.")
            activity = Activity(type=ActivityTypes.MESSAGE, text=activity_or_text)
            if speak:
                activity.speak = speak
            if input_hint:
                activity.input_hint = input_hint
        else:
            if activity_or_text is None:
                raise TypeError("activity")
            activity = activity_or_text

        responses = await self.send_activities([activity])
        if not responses:
            return ResourceResponse()
        return responses[0]

    async def send_activities(self, activities: list[Activity]) -> list[ResourceResponse]:
        """Send a batch of activities through the handler chain and adapter."""
        if not activities:
            raise ValueError("Expecting one or more activities.")

        reference = TurnContext.get_conversation_reference(self._activity)
        output: list[Activity] = []
        for activity in activities:
            outgoing = TurnContext.apply_conversation_reference(activity.model_copy(), reference)
            if not outgoing.type:
                outgoing.type = ActivityTypes.MESSAGE
            output.append(outgoing)

        async def logic() -> list[ResourceResponse]:
            sent_non_trace = False
            if self._activity.delivery_mode == DeliveryModes.EXPECT_REPLIES:
                responses = []
                for activity in output:
                    self.buffered_reply_activities.append(activity)
                    responses.append(ResourceResponse())
                    sent_non_trace |= activity.type != ActivityTypes.TRACE
            else:
                responses = await self._adapter.send_activities(self, output)
                for index, activity in enumerate(output):
                    if index < len(responses) and responses[index] is not None:
                        activity.id = responses[index].id
                    sent_non_trace |= activity.type != ActivityTypes.TRACE

            if sent_non_trace:
                self._responded = True
            return responses

        return await self._emit(self._on_send_activities, output, logic)

    async def update_activity(self, activity: Activity) -> ResourceResponse | None:
        """Replace a previously sent activity."""
        if activity is None:
            raise TypeError("activity")

        reference = TurnContext.get_conversation_reference(self._activity)
        updated = TurnContext.apply_conversation_reference(activity.model_copy(), reference)

        async def logic() -> ResourceResponse | None:
            return await self._adapter.update_activity(self, updated)

        return await self._emit(self._on_update_activity, updated, logic)

    async def delete_activity(self, id_or_reference: str | ConversationReference) -> None:
        """Delete a previously sent activity by id or conversation reference."""
        if isinstance(id_or_reference, str):
            if not id_or_reference.strip():
                raise ValueError("activity id must not be empty")
            reference = TurnContext.get_conversation_reference(self._activity)
            reference.activity_id = id_or_reference
        elif id_or_reference is None:
            raise TypeError("conversation reference")
        else:
            reference = id_or_reference

        async def logic() -> None:
            await self._adapter.delete_activity(self, reference)

        return await self._emit(self._on_delete_activity, reference, logic)

    async def send_trace_activity(
        self,
        name: str,
        value: Any = None,
        value_type: str | None = None,
        label: str | None = None,
    ) -> ResourceResponse:
        """Send a trace activity addressed to the current conversation."""
        trace = Activity.create_trace_activity(name, value, value_type, label)
        return await self.send_activity(trace)

    async def _emit(self, handlers: list, payload: Any, logic: Callable[[], Awaitable]) -> Any:
        async def run(index: int) -> Any:
            if index == len(handlers):
                return await logic()
            return await handlers[index](self, payload, lambda: run(index + 1))

        return await run(0)

    # -------------------------------------------------------------------------
    # Conversation reference helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def get_conversation_reference(activity: Activity) -> ConversationReference:
        """Extract a conversation reference from an incoming activity."""
        return activity.get_conversation_reference()

    @staticmethod
    def apply_conversation_reference(
        activity: Activity, reference: ConversationReference, is_incoming: bool = False
    ) -> Activity:
        """Address an activity using a conversation reference."""
        return activity.apply_conversation_reference(reference, is_incoming)

    @staticmethod
    def get_reply_conversation_reference(
        activity: Activity, reply: ResourceResponse
    ) -> ConversationReference:
        """Conversation reference pointing at a reply the bot has sent."""
        reference = TurnContext.get_conversation_reference(activity)
        reference.activity_id = reply.id
        return reference

    @staticmethod
    def get_mentions(activity: Activity) -> list[Mention]:
        return activity.get_mentions()

    @staticmethod
    def remove_mention_text(activity: Activity, identifier: str) -> str | None:
        """Strip every mention of `identifier` from the activity text."""
        for mention in TurnContext.get_mentions(activity):
            if mention.mentioned and mention.mentioned.id == identifier and mention.text:
                pattern = re.escape(mention.text)
                activity.text = re.sub(pattern, "", activity.text or "", flags=re.IGNORECASE)
                activity.text = activity.text.strip()
        return activity.text

    @staticmethod
    def remove_recipient_mention(activity: Activity) -> str | None:
        """Strip mentions of the bot itself from the activity text."""
        if activity.recipient is None or activity.recipient.id is None:
            return activity.text
        return TurnContext.remove_mention_text(activity, activity.recipient.id)


def is_expecting_input(activity: Activity) -> bool:
    return activity.input_hint == InputHints.EXPECTING_INPUT
