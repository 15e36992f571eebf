"""In-process adapter and fluent helper for testing bots.

    adapter = TestAdapter(bot.on_turn)
    await adapter.send("hi").assert_reply("Hello!").start_test()
"""

import asyncio
import inspect
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from palaver.core.adapter import BotAdapter
from palaver.core.middleware import BotCallback
from palaver.core.turn_context import TurnContext
from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    ResourceResponse,
)

ReplyValidator = Callable[[Activity, str | None], Any]


class TestAdapter(BotAdapter):
    """Adapter that queues the bot's replies in memory instead of sending them.

    Args:
        logic: Bot callback used by `send`/`TestFlow` steps.
        template_or_conversation: Activity or conversation reference whose
            addressing fields are copied onto every inbound activity.
        send_trace_activity: Keep trace activities in the reply queue.
    """

    __test__ = False

    def __init__(
        self,
        logic: BotCallback | None = None,
        template_or_conversation: Activity | ConversationReference | None = None,
        send_trace_activity: bool = False,
    ):
        super().__init__()
        self.logic = logic
        self._next_id = 0
        self._send_trace_activity = send_trace_activity
        self.activity_buffer: list[Activity] = []
        self.updated_activities: list[Activity] = []
        self.deleted_activities: list[ConversationReference] = []

        if isinstance(template_or_conversation, ConversationReference):
            reference = template_or_conversation
            self.template = Activity(
                channel_id=reference.channel_id,
                service_url=reference.service_url,
                from_property=reference.user,
                recipient=reference.bot,
                conversation=reference.conversation,
                locale=reference.locale,
            )
        elif isinstance(template_or_conversation, Activity):
            self.template = template_or_conversation
        else:
            self.template = Activity(
                channel_id="test",
                service_url="https://test.com",
                from_property=ChannelAccount(id="user1", name="User1"),
                recipient=ChannelAccount(id="bot", name="Bot"),
                conversation=ConversationAccount(id="Convo1"),
                locale="en-us",
            )

    @property
    def locale(self) -> str | None:
        return self.template.locale

    @locale.setter
    def locale(self, value: str | None) -> None:
        self.template.locale = value

    @property
    def conversation(self) -> ConversationReference:
        return ConversationReference(
            channel_id=self.template.channel_id,
            service_url=self.template.service_url,
            user=self.template.from_property,
            bot=self.template.recipient,
            conversation=self.template.conversation,
            locale=self.template.locale,
        )

    def _take_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    async def process_activity(self, activity: Activity, logic: BotCallback | None = None) -> Any:
        """Run one inbound activity through the pipeline."""
        if not activity.type:
            activity.type = ActivityTypes.MESSAGE
        if activity.channel_id is None:
            activity.channel_id = self.template.channel_id
        if activity.from_property is None:
            activity.from_property = self.template.from_property
        if activity.recipient is None:
            activity.recipient = self.template.recipient
        if activity.conversation is None:
            activity.conversation = self.template.conversation
        if activity.service_url is None:
            activity.service_url = self.template.service_url
        if activity.locale is None:
            activity.locale = self.template.locale
        if activity.id is None:
            activity.id = self._take_id()
        if activity.timestamp is None:
            activity.timestamp = datetime.now(timezone.utc)

        context = TurnContext(self, activity)
        return await self.run_pipeline(context, logic or self.logic)

    async def send_activities(
        self, context: TurnContext, activities: list[Activity]
    ) -> list[ResourceResponse]:
        responses = []
        for activity in activities:
            if not activity.id:
                activity.id = str(uuid.uuid4())
            if activity.timestamp is None:
                activity.timestamp = datetime.now(timezone.utc)

            if activity.type == ActivityTypes.DELAY:
                delay_ms = activity.value if isinstance(activity.value, (int, float)) else 1000
                await asyncio.sleep(delay_ms / 1000)
            elif activity.type == ActivityTypes.TRACE:
                if self._send_trace_activity:
                    self.activity_buffer.append(activity)
            else:
                self.activity_buffer.append(activity)
            responses.append(ResourceResponse(id=activity.id))
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity) -> ResourceResponse | None:
        self.updated_activities.append(activity)
        return ResourceResponse(id=activity.id)

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        self.deleted_activities.append(reference)

    def get_next_reply(self) -> Activity | None:
        """Pop the oldest queued reply, or None when the queue is empty."""
        if self.activity_buffer:
            return self.activity_buffer.pop(0)
        return None

    def make_activity(self, text: str | None = None) -> Activity:
        return Activity(
            type=ActivityTypes.MESSAGE,
            locale=self.locale,
            from_property=self.template.from_property,
            recipient=self.template.recipient,
            conversation=self.template.conversation,
            service_url=self.template.service_url,
            channel_id=self.template.channel_id,
            id=self._take_id(),
            text=text,
        )

    async def receive_activity(self, activity_or_text: Activity | str) -> Any:
        if isinstance(activity_or_text, str):
            activity = self.make_activity(activity_or_text)
        else:
            activity = activity_or_text
        return await self.process_activity(activity, self.logic)

    async def send_text_to_bot(self, text: str, callback: BotCallback) -> Any:
        return await self.process_activity(self.make_activity(text), callback)

    async def create_conversation(self, channel_id: str, callback: BotCallback) -> Any:
        """Start a new conversation and deliver a conversationUpdate for it."""
        self.activity_buffer.clear()
        update = Activity.create_conversation_update_activity()
        update.channel_id = channel_id
        update.conversation = ConversationAccount(id=str(uuid.uuid4()))
        update.members_added = [self.template.from_property]
        context = TurnContext(self, update)
        return await callback(context)

    @staticmethod
    def create_conversation_reference(
        name: str, user: str = "User1", bot: str = "Bot"
    ) -> ConversationReference:
        return ConversationReference(
            channel_id="test",
            service_url="https://test.com",
            conversation=ConversationAccount(id=name, name=name, is_group=False),
            user=ChannelAccount(id=user.lower(), name=user),
            bot=ChannelAccount(id=bot.lower(), name=bot),
            locale="en-us",
        )

    def send(self, user_says: Activity | str) -> "TestFlow":
        """Start a TestFlow by sending a message to the bot."""
        return TestFlow(None, self).send(user_says)

    def test(
        self,
        user_says: Activity | str,
        expected: Activity | str | ReplyValidator,
        description: str | None = None,
        timeout: float = 3.0,
    ) -> "TestFlow":
        return TestFlow(None, self).test(user_says, expected, description, timeout)


class TestFlow:
    """Fluent sequence of send and assert steps run against a TestAdapter.

    Each call returns a new flow whose step runs after the previous one.
    Nothing executes until the flow is awaited or `start_test()` is called.
    """

    __test__ = False

    def __init__(self, previous: Callable[[], Awaitable[None]] | None, adapter: TestAdapter):
        self._previous = previous
        self.adapter = adapter

    def __await__(self):
        return self.start_test().__await__()

    async def start_test(self) -> None:
        if self._previous is not None:
            await self._previous()

    def _then(self, step: Callable[[], Awaitable[None]]) -> "TestFlow":
        previous = self._previous

        async def run() -> None:
            if previous is not None:
                await previous()
            await step()

        return TestFlow(run, self.adapter)

    def send(self, user_says: Activity | str) -> "TestFlow":
        if user_says is None:
            raise TypeError("You have to pass a user_says parameter")

        async def step() -> None:
            await self.adapter.receive_activity(user_says)

        return self._then(step)

    def delay(self, seconds: float) -> "TestFlow":
        async def step() -> None:
            await asyncio.sleep(seconds)

        return self._then(step)

    def assert_reply(
        self,
        expected: Activity | str | ReplyValidator,
        description: str | None = None,
        timeout: float = 3.0,
    ) -> "TestFlow":
        """Assert the next reply matches text, an activity, or a validator callable."""

        async def step() -> None:
            reply = await self._wait_for_reply(timeout)
            if reply is None:
                raise AssertionError(
                    f"{description or 'assert_reply'}: no reply received within {timeout}s "
                    f"(expected {_describe(expected)})"
                )
            await _check_reply(reply, expected, description)

        return self._then(step)

    def assert_reply_one_of(
        self, candidates: list[str], description: str | None = None, timeout: float = 3.0
    ) -> "TestFlow":
        async def step() -> None:
            reply = await self._wait_for_reply(timeout)
            if reply is None or reply.text not in candidates:
                got = reply.text if reply is not None else None
                raise AssertionError(
                    f"{description or 'assert_reply_one_of'}: {got!r} is not one of {candidates!r}"
                )

        return self._then(step)

    def assert_no_reply(self, description: str | None = None, timeout: float = 0.2) -> "TestFlow":
        async def step() -> None:
            reply = await self._wait_for_reply(timeout)
            if reply is not None:
                raise AssertionError(
                    f"{description or 'assert_no_reply'}: unexpected reply {reply.type} {reply.text!r}"
                )

        return self._then(step)

    def test(
        self,
        user_says: Activity | str,
        expected: Activity | str | ReplyValidator,
        description: str | None = None,
        timeout: float = 3.0,
    ) -> "TestFlow":
        """Send a message and assert the reply."""
        return self.send(user_says).assert_reply(expected, description, timeout)

    async def _wait_for_reply(self, timeout: float) -> Activity | None:
        deadline = time.monotonic() + timeout
        while True:
            reply = self.adapter.get_next_reply()
            if reply is not None:
                return reply
            if time.monotonic() >= deadline:
                return None
            await asyncio.sleep(0.01)


def _describe(expected: Any) -> str:
    if isinstance(expected, Activity):
        return f"{expected.type} {expected.text!r}"
    if isinstance(expected, str):
        return repr(expected)
    return getattr(expected, "__name__", repr(expected))


async def _check_reply(reply: Activity, expected: Activity | str | ReplyValidator, description: str | None) -> None:
    label = description or "assert_reply"
    if isinstance(expected, str):
        if reply.text != expected:
            raise AssertionError(f"{label}: expected {expected!r}, got {reply.text!r}")
    elif isinstance(expected, Activity):
        if expected.type and reply.type != expected.type:
            raise AssertionError(f"{label}: expected type {expected.type}, got {reply.type}")
        if expected.text is not None and reply.text != expected.text:
            raise AssertionError(f"{label}: expected {expected.text!r}, got {reply.text!r}")
    else:
        result = expected(reply, description)
        if inspect.isawaitable(result):
            await result
