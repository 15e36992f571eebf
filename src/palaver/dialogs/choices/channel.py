"""Per-channel capabilities used when rendering choices."""

from palaver.core.turn_context import TurnContext


class Channels:
    """Known channel ids."""

    ALEXA = "alexa"
    CONSOLE = "console"
    CORTANA = "cortana"
    DIRECTLINE = "directline"
    DIRECTLINESPEECH = "directlinespeech"
    EMAIL = "email"
    EMULATOR = "emulator"
    FACEBOOK = "facebook"
    GROUPME = "groupme"
    KIK = "kik"
    LINE = "line"
    MSTEAMS = "msteams"
    ONEBOX = "onebox"
    SKYPE = "skype"
    SKYPEFORBUSINESS = "skypeforbusiness"
    SLACK = "slack"
    SMS = "sms"
    TELEGRAM = "telegram"
    TEST = "test"
    TWILIO = "twilio-sms"
    WEBCHAT = "webchat"


_SUGGESTED_ACTION_LIMITS = {
    Channels.FACEBOOK: 10,
    Channels.SKYPE: 10,
    Channels.LINE: 13,
    Channels.KIK: 20,
    Channels.TELEGRAM: 100,
    Channels.EMULATOR: 100,
    Channels.DIRECTLINE: 100,
    Channels.DIRECTLINESPEECH: 100,
    Channels.WEBCHAT: 100,
}

_CARD_ACTION_LIMITS = {
    Channels.FACEBOOK: 3,
    Channels.SKYPE: 3,
    Channels.MSTEAMS: 3,
    Channels.LINE: 99,
    Channels.SLACK: 100,
    Channels.EMULATOR: 100,
    Channels.DIRECTLINE: 100,
    Channels.DIRECTLINESPEECH: 100,
    Channels.WEBCHAT: 100,
    Channels.CORTANA: 100,
}


class Channel:
    @staticmethod
    def supports_suggested_actions(channel_id: str | None, button_cnt: int = 100) -> bool:
        """Whether the channel can show `button_cnt` suggested actions."""
        limit = _SUGGESTED_ACTION_LIMITS.get(channel_id)
        return limit is not None and button_cnt <= limit

    @staticmethod
    def supports_card_actions(channel_id: str | None, button_cnt: int = 100) -> bool:
        """Whether the channel can show `button_cnt` buttons on a card."""
        limit = _CARD_ACTION_LIMITS.get(channel_id)
        return limit is not None and button_cnt <= limit

    @staticmethod
    def has_message_feed(channel_id: str | None) -> bool:
        return channel_id != Channels.CORTANA

    @staticmethod
    def max_action_title_length(channel_id: str | None) -> int:
        return 20

    @staticmethod
    def get_channel_id(turn_context: TurnContext) -> str | None:
        return turn_context.activity.channel_id or None
