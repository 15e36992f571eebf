"""Hero cards for active learning suggestions and multi-turn prompts."""

from palaver.models import ActionTypes, Activity, CardAction, HeroCard

from .models import QueryResult


def _im_back(text: str) -> CardAction:
    return CardAction(type=ActionTypes.IM_BACK, title=text, value=text)


class QnACardBuilder:
    @staticmethod
    def get_suggestions_card(suggestions: list[str], card_title: str, card_no_match_text: str) -> Activity:
        """A "Did you mean" card with one button per suggestion plus a no-match button."""
        if suggestions is None:
            raise TypeError("suggestions cannot be None")
        if card_title is None:
            raise TypeError("card_title cannot be None")
        if card_no_match_text is None:
            raise TypeError("card_no_match_text cannot be None")

        buttons = [_im_back(suggestion) for suggestion in suggestions]
        buttons.append(_im_back(card_no_match_text))

        activity = Activity.create_message_activity()
        activity.text = card_title
        activity.attachments = [HeroCard(buttons=buttons).to_attachment()]
        return activity

    @staticmethod
    def get_qna_prompts_card(result: QueryResult, card_no_match_text: str) -> Activity:
        """The answer text with one button per follow-up prompt."""
        if result is None:
            raise TypeError("result cannot be None")
        if card_no_match_text is None:
            raise TypeError("card_no_match_text cannot be None")

        prompts = result.context.prompts if result.context else []
        buttons = [_im_back(prompt.display_text) for prompt in prompts]

        activity = Activity.create_message_activity()
        activity.text = result.answer
        activity.attachments = [HeroCard(buttons=buttons).to_attachment()]
        return activity
