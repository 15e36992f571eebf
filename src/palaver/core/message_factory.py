"""Helpers for building common message activities."""

from __future__ import annotations

from palaver.models import (
    ActionTypes,
    Activity,
    ActivityTypes,
    Attachment,
    AttachmentLayoutTypes,
    CardAction,
    InputHints,
    SuggestedActions,
)


def _attachment_activity(
    attachment_layout: str,
    attachments: list[Attachment],
    text: str | None = None,
    speak: str | None = None,
    input_hint: str | None = None,
) -> Activity:
    message = Activity(
        type=ActivityTypes.MESSAGE,
        attachment_layout=attachment_layout,
        attachments=attachments,
        input_hint=input_hint or InputHints.ACCEPTING_INPUT,
    )
    if text:
        message.text = text
    if speak:
        message.speak = speak
    return message


class MessageFactory:
    """Creates message activities with text, suggested actions or attachments."""

    @staticmethod
    def text(text: str, speak: str | None = None, input_hint: str | None = None) -> Activity:
        message = Activity(
            type=ActivityTypes.MESSAGE,
            text=text,
            input_hint=input_hint or InputHints.ACCEPTING_INPUT,
        )
        if speak:
            message.speak = speak
        return message

    @staticmethod
    def suggested_actions(
        actions: list[CardAction | str],
        text: str | None = None,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> Activity:
        """Message with suggested actions; plain strings become imBack buttons.

        Args:
            actions: Card actions, or strings used as title and value.
            text: Optional message text.
            speak: Optional SSML.
            input_hint: Optional input hint, defaults to acceptingInput.
        """
        card_actions = [
            CardAction(type=ActionTypes.IM_BACK, title=action, value=action)
            if isinstance(action, str)
            else action
            for action in actions
        ]
        message = Activity(
            type=ActivityTypes.MESSAGE,
            input_hint=input_hint or InputHints.ACCEPTING_INPUT,
            suggested_actions=SuggestedActions(actions=card_actions),
        )
        if text:
            message.text = text
        if speak:
            message.speak = speak
        return message

    @staticmethod
    def attachment(
        attachment: Attachment | list[Attachment],
        text: str | None = None,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> Activity:
        if attachment is None:
            raise TypeError("attachment is required")
        attachments = attachment if isinstance(attachment, list) else [attachment]
        return _attachment_activity(AttachmentLayoutTypes.LIST, attachments, text, speak, input_hint)

    @staticmethod
    def list(
        attachments: list[Attachment],
        text: str | None = None,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> Activity:
        if attachments is None:
            raise TypeError("attachments are required")
        return _attachment_activity(AttachmentLayoutTypes.LIST, attachments, text, speak, input_hint)

    @staticmethod
    def carousel(
        attachments: list[Attachment],
        text: str | None = None,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> Activity:
        if attachments is None:
            raise TypeError("attachments are required")
        return _attachment_activity(
            AttachmentLayoutTypes.CAROUSEL, attachments, text, speak, input_hint
        )

    @staticmethod
    def content_url(
        url: str,
        content_type: str,
        name: str | None = None,
        text: str | None = None,
        speak: str | None = None,
        input_hint: str | None = None,
    ) -> Activity:
        """Message carrying a single attachment referenced by URL."""
        attachment = Attachment(content_type=content_type, content_url=url)
        if name:
            attachment.name = name
        return _attachment_activity(AttachmentLayoutTypes.LIST, [attachment], text, speak, input_hint)
