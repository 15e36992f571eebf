"""Prompt for a number."""

from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.dialogs.choices import recognize_number
from palaver.models import Activity, ActivityTypes

from .culture import PromptCultureModels
from .options import PromptOptions, PromptRecognizerResult, PromptValidator
from .prompt import Prompt


class NumberPrompt(Prompt[int | float]):
    """Recognizes the first number in the reply.

    Args:
        dialog_id: Dialog id.
        validator: Optional validator.
        default_locale: Culture used when the activity has no locale.
        number_type: ``int`` or ``float``; a reply like "3.5" fails an int prompt.
    """

    def __init__(
        self,
        dialog_id: str,
        validator: PromptValidator | None = None,
        default_locale: str | None = None,
        number_type: type = int,
    ):
        super().__init__(dialog_id, validator)
        if number_type not in (int, float):
            raise TypeError("NumberPrompt(): number_type must be int or float.")
        self.default_locale = default_locale
        self.number_type = number_type

    async def on_prompt(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
        is_retry: bool,
    ) -> None:
        if turn_context is None:
            raise TypeError("NumberPrompt.on_prompt(): turn_context cannot be None.")
        if options is None:
            raise TypeError("NumberPrompt.on_prompt(): options cannot be None.")

        if is_retry and options.retry_prompt is not None:
            await turn_context.send_activity(options.retry_prompt)
        elif options.prompt is not None:
            await turn_context.send_activity(options.prompt)

    async def on_recognize(
        self,
        turn_context: TurnContext,
        state: dict[str, Any],
        options: PromptOptions,
    ) -> PromptRecognizerResult[int | float]:
        if turn_context is None:
            raise TypeError("NumberPrompt.on_recognize(): turn_context cannot be None.")

        result = PromptRecognizerResult[int | float]()
        activity = turn_context.activity
        if activity.type != ActivityTypes.MESSAGE or not activity.text:
            return result

        results = recognize_number(activity.text, self._get_culture(activity))
        if not results:
            return result

        text = str(results[0].resolution["value"])
        try:
            result.value = self.number_type(text)
        except ValueError:
            return result
        result.succeeded = True
        return result

    def _get_culture(self, activity: Activity) -> str:
        culture = PromptCultureModels.map_to_nearest_language(
            activity.locale or self.default_locale or PromptCultureModels.ENGLISH_CULTURE
        )
        return culture or PromptCultureModels.ENGLISH_CULTURE
