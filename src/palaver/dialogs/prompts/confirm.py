"""Prompt for a yes/no answer."""

from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.dialogs.choices import (
    Choice,
    ChoiceFactoryOptions,
    ChoiceRecognizers,
    ListStyle,
    recognize_boolean,
)
from palaver.models import Activity, ActivityTypes

from .culture import PromptCultureModels
from .options import PromptOptions, PromptRecognizerResult, PromptValidator
from .prompt import Prompt


def _default_choice_defaults() -> dict[str, tuple[Choice, Choice, ChoiceFactoryOptions]]:
    return {
        model.locale: (
            Choice(value=model.yes_in_language),
            Choice(value=model.no_in_language),
            ChoiceFactoryOptions(
                inline_separator=model.separator,
                inline_or=model.inline_or,
                inline_or_more=model.inline_or_more,
                include_numbers=True,
            ),
        )
        for model in PromptCultureModels.get_supported_cultures()
    }


class ConfirmPrompt(Prompt[bool]):
    """Asks a yes/no question, rendered with the culture's yes and no choices.

    Replies are recognized as yes/no words; when that fails and numbers are
    shown, "1" or the first choice means yes.
    """

    def __init__(
        self,
        dialog_id: str,
        validator: PromptValidator | None = None,
        default_locale: str | None = None,
        choice_defaults: dict[str, tuple[Choice, Choice, ChoiceFactoryOptions]] | None = None,
    ):
        super().__init__(dialog_id, validator)
        self.style = ListStyle.AUTO
        self.default_locale = default_locale
        self.choice_options: ChoiceFactoryOptions | None = None
        self.confirm_choices: tuple[Choice, Choice] | None = None
        self._choice_defaults = choice_defaults or _default_choice_defaults()

    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        if turn_context is None:
            raise TypeError("ConfirmPrompt.on_prompt(): turn_context cannot be None.")
        if options is None:
            raise TypeError("ConfirmPrompt.on_prompt(): options cannot be None.")

        culture = self._determine_culture(turn_context.activity)
        defaults = self._choice_defaults[culture]
        choice_options = self.choice_options or defaults[2]
        confirms = list(self.confirm_choices or (defaults[0], defaults[1]))
        choice_style = options.style if options.style is not None else self.style
        channel_id = turn_context.activity.channel_id

        source = options.retry_prompt if is_retry and options.retry_prompt is not None else options.prompt
        prompt = self.append_choices(source, channel_id, confirms, choice_style, choice_options)
        await turn_context.send_activity(prompt)

    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[bool]:
        if turn_context is None:
            raise TypeError("ConfirmPrompt.on_recognize(): turn_context cannot be None.")

        result = PromptRecognizerResult[bool]()
        activity = turn_context.activity
        if activity.type != ActivityTypes.MESSAGE:
            return result

        utterance = activity.text or ""
        culture = self._determine_culture(activity)
        results = recognize_boolean(utterance, culture)
        if results:
            result.succeeded = True
            result.value = bool(results[0].resolution["value"])
            return result

        defaults = self._choice_defaults[culture]
        choice_options = self.choice_options or defaults[2]
        if choice_options.include_numbers:
            confirms = list(self.confirm_choices or (defaults[0], defaults[1]))
            choices = ChoiceRecognizers.recognize_choices(utterance, confirms)
            if choices:
                result.succeeded = True
                result.value = choices[0].resolution.index == 0

        return result

    def _determine_culture(self, activity: Activity) -> str:
        culture = PromptCultureModels.map_to_nearest_language(
            activity.locale or self.default_locale or PromptCultureModels.ENGLISH_CULTURE
        )
        if not culture or culture not in self._choice_defaults:
            culture = PromptCultureModels.ENGLISH_CULTURE
        return culture
