"""Prompt that hands the raw incoming activity to a validator."""

from __future__ import annotations

from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.dialogs.dialog import Dialog
from palaver.dialogs.dialog_context import DialogContext
from palaver.dialogs.models import DialogInstance, DialogReason, DialogTurnResult
from palaver.models import Activity

from .options import (
    ATTEMPT_COUNT_KEY,
    PromptOptions,
    PromptRecognizerResult,
    PromptValidator,
    PromptValidatorContext,
)


class ActivityPrompt(Dialog):
    """Waits for any activity, e.g. an event, and lets the validator decide.

    Unlike the other prompts, every activity type is recognized and a
    validator is mandatory.
    """

    PERSISTED_OPTIONS = "options"
    PERSISTED_STATE = "state"

    def __init__(self, dialog_id: str, validator: PromptValidator):
        if not dialog_id:
            raise TypeError("ActivityPrompt(): dialog_id cannot be empty.")
        if validator is None:
            raise TypeError("ActivityPrompt(): validator cannot be None.")
        super().__init__(dialog_id)
        self._validator = validator

    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("ActivityPrompt.begin_dialog(): dialog_context cannot be None.")
        if not isinstance(options, PromptOptions):
            raise TypeError("ActivityPrompt.begin_dialog(): Prompt options are required for Prompt dialogs.")

        state = dialog_context.active_dialog.state
        state[self.PERSISTED_OPTIONS] = options
        state[self.PERSISTED_STATE] = {ATTEMPT_COUNT_KEY: 0}

        await self.on_prompt(dialog_context.context, state[self.PERSISTED_STATE], options, False)
        return Dialog.END_OF_TURN

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("ActivityPrompt.continue_dialog(): dialog_context cannot be None.")

        instance = dialog_context.active_dialog
        state = instance.state[self.PERSISTED_STATE]
        options = instance.state[self.PERSISTED_OPTIONS]
        recognized = await self.on_recognize(dialog_context.context, state, options)

        state[ATTEMPT_COUNT_KEY] = state.get(ATTEMPT_COUNT_KEY, 0) + 1

        prompt_context = PromptValidatorContext(dialog_context.context, recognized, state, options)
        if await self._validator(prompt_context):
            return await dialog_context.end_dialog(recognized.value)

        await self.on_prompt(dialog_context.context, state, options, True)
        return Dialog.END_OF_TURN

    async def resume_dialog(
        self, dialog_context: DialogContext, reason: DialogReason, result: object = None
    ) -> DialogTurnResult:
        await self.reprompt_dialog(dialog_context.context, dialog_context.active_dialog)
        return Dialog.END_OF_TURN

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        state = instance.state[self.PERSISTED_STATE]
        options = instance.state[self.PERSISTED_OPTIONS]
        await self.on_prompt(context, state, options, False)

    async def on_prompt(
        self,
        context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool = False,
    ) -> None:
        if context is None:
            raise TypeError("ActivityPrompt.on_prompt(): context cannot be None.")
        if options is None:
            raise TypeError("ActivityPrompt.on_prompt(): options cannot be None.")

        if is_retry and options.retry_prompt is not None:
            await context.send_activity(options.retry_prompt)
        elif options.prompt is not None:
            await context.send_activity(options.prompt)

    async def on_recognize(
        self,
        context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[Activity]:
        return PromptRecognizerResult[Activity](succeeded=True, value=context.activity)
