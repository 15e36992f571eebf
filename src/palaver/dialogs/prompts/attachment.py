"""Prompt for one or more file attachments."""

from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.models import ActivityTypes, Attachment

from .options import PromptOptions, PromptRecognizerResult
from .prompt import Prompt


class AttachmentPrompt(Prompt[list[Attachment]]):
    """Succeeds when the reply carries at least one attachment."""

    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        if turn_context is None:
            raise TypeError("AttachmentPrompt.on_prompt(): turn_context cannot be None.")
        if not isinstance(options, PromptOptions):
            raise TypeError("AttachmentPrompt.on_prompt(): PromptOptions are required.")

        if is_retry and options.retry_prompt is not None:
            await turn_context.send_activity(options.retry_prompt)
        elif options.prompt is not None:
            await turn_context.send_activity(options.prompt)

    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[list[Attachment]]:
        if turn_context is None:
            raise TypeError("AttachmentPrompt.on_recognize(): turn_context cannot be None.")

        result = PromptRecognizerResult[list[Attachment]]()
        activity = turn_context.activity
        if activity.type == ActivityTypes.MESSAGE and activity.attachments:
            result.succeeded = True
            result.value = list(activity.attachments)
        return result
