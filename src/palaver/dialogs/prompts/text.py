"""Prompt for free text."""

from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.models import ActivityTypes

from .options import PromptOptions, PromptRecognizerResult
from .prompt import Prompt


class TextPrompt(Prompt[str]):
    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        if turn_context is None:
            raise TypeError("TextPrompt.on_prompt(): turn_context cannot be None.")
        if options is None:
            raise TypeError("TextPrompt.on_prompt(): options cannot be None.")

        if is_retry and options.retry_prompt is not None:
            await turn_context.send_activity(options.retry_prompt)
        elif options.prompt is not None:
            await turn_context.send_activity(options.prompt)

    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[str]:
        if turn_context is None:
            raise TypeError("TextPrompt.on_recognize(): turn_context cannot be None.")

        result = PromptRecognizerResult[str]()
        activity = turn_context.activity
        if activity.type == ActivityTypes.MESSAGE and activity.text is not None:
            result.succeeded = True
            result.value = activity.text
        return result
