"""Render a list of choices as a message activity."""

from palaver.core.message_factory import MessageFactory
from palaver.models import ActionTypes, Activity, CardAction, HeroCard, InputHints

from .channel import Channel
from .models import Choice, ChoiceFactoryOptions


def _title(choice: Choice) -> str:
    if choice.action is not None and choice.action.title:
        return choice.action.title
    return choice.value


class ChoiceFactory:
    """Builds inline, list, suggested action and hero card renderings of choices."""

    @staticmethod
    def for_channel(
        channel_id: str | None,
        choices: list[Choice | str],
        text: str | None = None,
        speak: str | None = None,
        options: ChoiceFactoryOptions | None = None,
    ) -> Activity:
        """Pick the best rendering the channel supports.

        Short titles go on a hero card when the channel supports card actions
        but not suggested actions, otherwise on suggested actions when
        supported. Without rich support, up to three choices are rendered
        inline and longer lists as a numbered list.
        """
        choices = ChoiceFactory.to_choices(choices)

        max_title_length = max((len(_title(c)) for c in choices), default=0)
        supports_suggested_actions = Channel.supports_suggested_actions(channel_id, len(choices))
        supports_card_actions = Channel.supports_card_actions(channel_id, len(choices))
        long_titles = max_title_length > Channel.max_action_title_length(channel_id)

        if not long_titles and not supports_suggested_actions and supports_card_actions:
            return ChoiceFactory.hero_card(choices, text, speak)
        if not long_titles and supports_suggested_actions:
            return ChoiceFactory.suggested_action(choices, text, speak)
        if not long_titles and len(choices) <= 3:
            return ChoiceFactory.inline(choices, text, speak, options)
        return ChoiceFactory.list_style(choices, text, speak, options)

    @staticmethod
    def inline(
        choices: list[Choice | str],
        text: str | None = None,
        speak: str | None = None,
        options: ChoiceFactoryOptions | None = None,
    ) -> Activity:
        """Render choices on one line, e.g. "Pick one: (1) red, (2) green, or (3) blue"."""
        choices = ChoiceFactory.to_choices(choices)
        opt = options or ChoiceFactoryOptions()

        connector = ""
        parts = [f"{text} " if text and text.strip() else " "]
        for index, choice in enumerate(choices):
            parts.append(connector)
            if opt.include_numbers:
                parts.append(f"({index + 1}) ")
            parts.append(_title(choice))
            if index == len(choices) - 2:
                connector = opt.inline_or if index == 0 else opt.inline_or_more
            else:
                connector = opt.inline_separator

        return MessageFactory.text("".join(parts), speak, InputHints.EXPECTING_INPUT)

    @staticmethod
    def list_style(
        choices: list[Choice | str],
        text: str | None = None,
        speak: str | None = None,
        options: ChoiceFactoryOptions | None = None,
    ) -> Activity:
        """Render choices one per line, numbered or bulleted."""
        choices = ChoiceFactory.to_choices(choices)
        opt = options or ChoiceFactoryOptions()

        lines = []
        for index, choice in enumerate(choices):
            prefix = f"{index + 1}. " if opt.include_numbers else "- "
            lines.append(prefix + _title(choice))

        body = "\n   ".join(lines)
        message = f"{text}\n\n   {body}" if text is not None else body
        return MessageFactory.text(message, speak, InputHints.EXPECTING_INPUT)

    @staticmethod
    def suggested_action(
        choices: list[Choice | str], text: str | None = None, speak: str | None = None
    ) -> Activity:
        return MessageFactory.suggested_actions(
            ChoiceFactory.extract_actions(choices), text, speak, InputHints.EXPECTING_INPUT
        )

    @staticmethod
    def hero_card(
        choices: list[Choice | str], text: str | None = None, speak: str | None = None
    ) -> Activity:
        card = HeroCard(text=text, buttons=ChoiceFactory.extract_actions(choices))
        return MessageFactory.attachment(
            [card.to_attachment()], None, speak, InputHints.EXPECTING_INPUT
        )

    @staticmethod
    def to_choices(choices: list[Choice | str] | None) -> list[Choice]:
        """Normalize strings to Choice objects."""
        if choices is None:
            return []
        return [Choice(value=c) if isinstance(c, str) else c for c in choices]

    @staticmethod
    def extract_actions(choices: list[Choice | str] | None) -> list[CardAction]:
        """Card actions for choices; choices without one get an imBack button."""
        actions = []
        for choice in ChoiceFactory.to_choices(choices):
            if choice.action is not None:
                actions.append(choice.action)
            else:
                actions.append(
                    CardAction(type=ActionTypes.IM_BACK, value=choice.value, title=choice.value)
                )
        return actions
