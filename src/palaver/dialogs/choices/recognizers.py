"""Recognize which choice a user picked."""

from .find import Find
from .models import Choice, FindChoicesOptions, FoundChoice, ModelResult
from .text_recognizers import recognize_number, recognize_ordinal


class ChoiceRecognizers:
    @staticmethod
    def recognize_choices(
        utterance: str,
        choices: list[Choice | str],
        options: FindChoicesOptions | None = None,
    ) -> list[ModelResult[FoundChoice]]:
        """Match an utterance against a list of choices.

        Choice text is matched first. When nothing matches, ordinals ("the
        second one", "last") and then plain numbers are treated as 1-based
        indexes into the list.

        Args:
            utterance: What the user said.
            choices: Choices, or plain strings, to pick from.
            options: Matching options.

        Returns:
            Found choices ordered by position in the utterance.
        """
        if choices is None:
            raise TypeError("ChoiceRecognizers.recognize_choices(): choices cannot be None")

        choices_list = [Choice(value=c) if isinstance(c, str) else c for c in choices]
        locale = options.locale if options is not None and options.locale else "en-us"

        matched = Find.find_choices(utterance, choices_list, options)
        if matched:
            return matched

        matches: list[ModelResult[dict]] = []
        if options is None or options.recognize_ordinals:
            matches = recognize_ordinal(utterance, locale)
            for match in matches:
                ChoiceRecognizers._match_choice_by_index(choices_list, matched, match)

        if not matches and (options is None or options.recognize_numbers):
            matches = recognize_number(utterance, locale)
            for match in matches:
                ChoiceRecognizers._match_choice_by_index(choices_list, matched, match)

        matched.sort(key=lambda m: m.start)
        return matched

    @staticmethod
    def _match_choice_by_index(
        choices: list[Choice],
        matched: list[ModelResult[FoundChoice]],
        match: ModelResult[dict],
    ) -> None:
        value = str(match.resolution.get("value", "")).replace("end", str(len(choices)))
        try:
            index = int(value) - 1
        except ValueError:
            return
        if 0 <= index < len(choices):
            matched.append(
                ModelResult(
                    start=match.start,
                    end=match.end,
                    type_name="choice",
                    text=match.text,
                    resolution=FoundChoice(value=choices[index].value, index=index, score=1.0),
                )
            )
