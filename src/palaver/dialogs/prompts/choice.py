"""Prompt for one of a list of choices."""

import dataclasses
from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.dialogs.choices import (
    ChoiceFactoryOptions,
    ChoiceRecognizers,
    FindChoicesOptions,
    FoundChoice,
    ListStyle,
)
from palaver.models import Activity, ActivityTypes

from .culture import PromptCultureModels
from .options import PromptOptions, PromptRecognizerResult, PromptValidator
from .prompt import Prompt


def _default_choice_defaults() -> dict[str, ChoiceFactoryOptions]:
    return {
        model.locale: ChoiceFactoryOptions(
            inline_separator=model.separator,
            inline_or=model.inline_or,
            inline_or_more=model.inline_or_more,
            include_numbers=True,
        )
        for model in PromptCultureModels.get_supported_cultures()
    }


class ChoicePrompt(Prompt[FoundChoice]):
    """Renders `PromptOptions.choices` and returns the FoundChoice picked.

    Attributes:
        style: Default rendering when the options don't specify one.
        default_locale: Culture used when the activity has no locale.
        recognizer_options: Options passed to choice recognition.
        choice_options: Overrides the per-culture separators.
    """

    def __init__(
        self,
        dialog_id: str,
        validator: PromptValidator | None = None,
        default_locale: str | None = None,
        choice_defaults: dict[str, ChoiceFactoryOptions] | None = None,
    ):
        super().__init__(dialog_id, validator)
        self.style = ListStyle.AUTO
        self.default_locale = default_locale
        self.recognizer_options: FindChoicesOptions | None = None
        self.choice_options: ChoiceFactoryOptions | None = None
        self._choice_defaults = choice_defaults or _default_choice_defaults()

    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        if turn_context is None:
            raise TypeError("ChoicePrompt.on_prompt(): turn_context cannot be None.")
        if options is None:
            raise TypeError("ChoicePrompt.on_prompt(): options cannot be None.")

        culture = self._determine_culture(turn_context.activity)
        choices = options.choices or []
        channel_id = turn_context.activity.channel_id
        choice_options = self.choice_options or self._choice_defaults[culture]
        choice_style = options.style if options.style is not None else self.style

        source = options.retry_prompt if is_retry and options.retry_prompt is not None else options.prompt
        prompt = self.append_choices(source, channel_id, choices, choice_style, choice_options)
        await turn_context.send_activity(prompt)

    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[FoundChoice]:
        if turn_context is None:
            raise TypeError("ChoicePrompt.on_recognize(): turn_context cannot be None.")

        result = PromptRecognizerResult[FoundChoice]()
        activity = turn_context.activity
        if activity.type != ActivityTypes.MESSAGE or not activity.text:
            return result

        choices = options.choices or []
        opt = dataclasses.replace(self.recognizer_options) if self.recognizer_options else FindChoicesOptions()
        opt.locale = self._determine_culture(activity, opt)

        results = ChoiceRecognizers.recognize_choices(activity.text, choices, opt)
        if results:
            result.succeeded = True
            result.value = results[0].resolution
        return result

    def _determine_culture(self, activity: Activity, opt: FindChoicesOptions | None = None) -> str:
        locale = (
            activity.locale
            or (opt.locale if opt is not None else None)
            or self.default_locale
            or PromptCultureModels.ENGLISH_CULTURE
        )
        culture = PromptCultureModels.map_to_nearest_language(locale)
        if not culture or culture not in self._choice_defaults:
            culture = PromptCultureModels.ENGLISH_CULTURE
        return culture
