"""Base class for dialogs that ask a question and validate the answer."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Generic, TypeVar

from palaver.core.turn_context import TurnContext
from palaver.dialogs.choices import Choice, ChoiceFactory, ChoiceFactoryOptions, ListStyle
from palaver.dialogs.dialog import Dialog
from palaver.dialogs.dialog_context import DialogContext
from palaver.dialogs.models import DialogEvent, DialogEvents, DialogInstance, DialogReason, DialogTurnResult
from palaver.models import Activity, ActivityTypes, InputHints

from .options import (
    ATTEMPT_COUNT_KEY,
    PromptOptions,
    PromptRecognizerResult,
    PromptValidator,
    PromptValidatorContext,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Prompt(Dialog, Generic[T]):
    """Sends a prompt, then re-prompts until the reply is recognized and valid.

    Subclasses implement `on_prompt` and `on_recognize`. An optional
    validator decides validity; without one, successful recognition is
    enough. The recognized value is returned to the calling dialog.
    """

    ATTEMPT_COUNT_KEY = ATTEMPT_COUNT_KEY
    PERSISTED_OPTIONS = "options"
    PERSISTED_STATE = "state"

    def __init__(self, dialog_id: str, validator: PromptValidator | None = None):
        if not dialog_id or not dialog_id.strip():
            raise TypeError("Prompt(): dialog_id cannot be None or empty.")
        super().__init__(dialog_id)
        self._validator = validator

    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("Prompt.begin_dialog(): dialog_context cannot be None.")
        if not isinstance(options, PromptOptions):
            raise TypeError("Prompt.begin_dialog(): Prompt options are required for Prompt dialogs.")

        if options.prompt is not None and not options.prompt.input_hint:
            options.prompt.input_hint = InputHints.EXPECTING_INPUT
        if options.retry_prompt is not None and not options.retry_prompt.input_hint:
            options.retry_prompt.input_hint = InputHints.EXPECTING_INPUT

        state = dialog_context.active_dialog.state
        state[self.PERSISTED_OPTIONS] = options
        state[self.PERSISTED_STATE] = {self.ATTEMPT_COUNT_KEY: 0}

        await self.on_prompt(dialog_context.context, state[self.PERSISTED_STATE], options, False)
        return Dialog.END_OF_TURN

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("Prompt.continue_dialog(): dialog_context cannot be None.")

        if dialog_context.context.activity.type != ActivityTypes.MESSAGE:
            return Dialog.END_OF_TURN

        instance = dialog_context.active_dialog
        state = instance.state[self.PERSISTED_STATE]
        options = instance.state[self.PERSISTED_OPTIONS]
        recognized = await self.on_recognize(dialog_context.context, state, options)

        state[self.ATTEMPT_COUNT_KEY] = state.get(self.ATTEMPT_COUNT_KEY, 0) + 1

        if await self._is_valid(dialog_context, state, options, recognized):
            return await dialog_context.end_dialog(recognized.value)

        if not dialog_context.context.responded:
            await self.on_prompt(dialog_context.context, state, options, True)

        return Dialog.END_OF_TURN

    async def resume_dialog(
        self, dialog_context: DialogContext, reason: DialogReason, result: object = None
    ) -> DialogTurnResult:
        # A dialog started on top of the prompt has ended; ask again.
        await self.reprompt_dialog(dialog_context.context, dialog_context.active_dialog)
        return Dialog.END_OF_TURN

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        state = instance.state[self.PERSISTED_STATE]
        options = instance.state[self.PERSISTED_OPTIONS]
        await self.on_prompt(context, state, options, False)

    async def on_pre_bubble_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        if (
            dialog_event.name == DialogEvents.ACTIVITY_RECEIVED
            and dialog_context.context.activity.type == ActivityTypes.MESSAGE
        ):
            state = dialog_context.active_dialog.state
            recognized = await self.on_recognize(
                dialog_context.context, state[self.PERSISTED_STATE], state[self.PERSISTED_OPTIONS]
            )
            return recognized.succeeded and not recognized.allow_interruption
        return False

    @abstractmethod
    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        """Send the prompt, or the retry prompt when `is_retry` is set."""
        pass

    @abstractmethod
    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[T]:
        """Recognize the user's reply."""
        pass

    def append_choices(
        self,
        prompt: Activity | None,
        channel_id: str | None,
        choices: list[Choice],
        style: ListStyle,
        options: ChoiceFactoryOptions | None = None,
    ) -> Activity:
        """Render `choices` into `prompt` using `style`.

        Args:
            prompt: Activity to add the choices to; a new one is created if None.
            channel_id: Channel, used to pick a rendering for AUTO.
            choices: Choices to render.
            style: Rendering style.
            options: Separators and numbering for inline and list styles.

        Returns:
            A copy of `prompt` carrying the rendered choices.
        """
        text = prompt.text if prompt is not None and prompt.text and prompt.text.strip() else ""

        if style == ListStyle.IN_LINE:
            msg = ChoiceFactory.inline(choices, text, None, options)
        elif style == ListStyle.LIST_STYLE:
            msg = ChoiceFactory.list_style(choices, text, None, options)
        elif style == ListStyle.SUGGESTED_ACTION:
            msg = ChoiceFactory.suggested_action(choices, text)
        elif style == ListStyle.HERO_CARD:
            msg = ChoiceFactory.hero_card(choices, text)
        elif style == ListStyle.NONE:
            msg = Activity(type=ActivityTypes.MESSAGE, text=text)
        else:
            msg = ChoiceFactory.for_channel(channel_id, choices, text, None, options)

        if prompt is None:
            msg.input_hint = InputHints.EXPECTING_INPUT
            return msg

        prompt = prompt.model_copy(deep=True)
        prompt.text = msg.text

        if msg.suggested_actions is not None and msg.suggested_actions.actions:
            prompt.suggested_actions = msg.suggested_actions

        if msg.attachments:
            prompt.attachments = [*(prompt.attachments or []), *msg.attachments]

        return prompt

    async def _is_valid(
        self,
        dialog_context: DialogContext,
        state: dict[str, Any],
        options: PromptOptions,
        recognized: PromptRecognizerResult[T],
    ) -> bool:
        if self._validator is not None:
            prompt_context = PromptValidatorContext(dialog_context.context, recognized, state, options)
            return await self._validator(prompt_context)
        return recognized.succeeded
