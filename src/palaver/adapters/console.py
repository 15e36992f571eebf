"""Console adapter for chatting with a bot in a terminal.

Input is read line by line through an async reader and every outgoing
activity is rendered to plain text lines handed to a writer callback, so
the CLI can plug in rich prompts and panels.
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from palaver.core.adapter import BotAdapter, OnTurnErrorHandler
from palaver.core.middleware import BotCallback
from palaver.core.turn_context import TurnContext
from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    HeroCard,
    ResourceResponse,
)

logger = logging.getLogger(__name__)

LineReader = Callable[[], Awaitable[str | None]]
LineWriter = Callable[[str], None]

EXIT_COMMANDS = ("exit", "quit")


async def _read_stdin() -> str | None:
    try:
        return await asyncio.to_thread(input, "> ")
    except EOFError:
        return None


class ConsoleAdapter(BotAdapter):
    """Adapter that talks to a single user on the local terminal."""

    def __init__(
        self,
        reader: LineReader | None = None,
        writer: LineWriter | None = None,
        reference: ConversationReference | None = None,
        on_turn_error: OnTurnErrorHandler | None = None,
    ):
        super().__init__(on_turn_error)
        self.reader = reader or _read_stdin
        self.writer = writer or print
        self.reference = reference or ConversationReference(
            channel_id="console",
            user=ChannelAccount(id="user", name="User"),
            bot=ChannelAccount(id="bot", name="Bot"),
            conversation=ConversationAccount(id="convo1", name="", is_group=False),
            service_url="",
        )
        self._next_id = 0

    async def process_activity(self, logic: BotCallback) -> None:
        """Read lines until EOF or an exit command, running one turn per line."""
        while True:
            text = await self.reader()
            if text is None or text.strip().lower() in EXIT_COMMANDS:
                break
            if not text.strip():
                continue
            await self.receive_text(text, logic)

    async def receive_text(self, text: str, logic: BotCallback) -> None:
        self._next_id += 1
        activity = Activity(
            type=ActivityTypes.MESSAGE,
            id=str(self._next_id),
            text=text,
            timestamp=datetime.now(timezone.utc),
        )
        activity.apply_conversation_reference(self.reference, is_incoming=True)

        context = TurnContext(self, activity)
        await self.run_pipeline(context, logic)

    async def send_activities(
        self, context: TurnContext, activities: list[Activity]
    ) -> list[ResourceResponse]:
        responses = []
        for activity in activities:
            if activity.type == ActivityTypes.DELAY:
                delay_ms = activity.value if isinstance(activity.value, (int, float)) else 1000
                await asyncio.sleep(delay_ms / 1000)
            elif activity.type == ActivityTypes.TRACE:
                logger.debug("trace %s: %s", activity.name, activity.value)
            else:
                for line in render_activity(activity):
                    self.writer(line)
            responses.append(ResourceResponse(id=activity.id or str(uuid.uuid4())))
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity) -> ResourceResponse | None:
        raise NotImplementedError("ConsoleAdapter does not support updating activities")

    async def delete_activity(self, context: TurnContext, reference: ConversationReference) -> None:
        raise NotImplementedError("ConsoleAdapter does not support deleting activities")


def render_activity(activity: Activity) -> list[str]:
    """Render an outgoing activity as plain text lines."""
    if activity.type == ActivityTypes.TYPING:
        return ["..."]
    if activity.type != ActivityTypes.MESSAGE:
        return [f"[{activity.type}]"]

    lines = []
    if activity.text:
        lines.append(activity.text)

    for attachment in activity.attachments or []:
        if attachment.content_type == HeroCard.CONTENT_TYPE:
            card = attachment.content
            if isinstance(card, dict):
                card = HeroCard.model_validate(card)
            if card.title:
                lines.append(card.title)
            if card.text:
                lines.append(card.text)
            for index, button in enumerate(card.buttons or [], start=1):
                lines.append(f"  [{index}] {button.title or button.value}")
        else:
            lines.append(f"<attachment {attachment.content_type}: {attachment.name or attachment.content_url}>")

    if activity.suggested_actions is not None:
        for index, action in enumerate(activity.suggested_actions.actions, start=1):
            lines.append(f"  ({index}) {action.title or action.value}")

    return lines
