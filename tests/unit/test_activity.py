"""Tests for the activity schema models."""

from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    HeroCard,
    InvokeResponse,
    Mention,
    Settings,
)


class TestActivityWireFormat:
    """Tests for camelCase aliases and unknown fields."""

    def test_parses_camel_case_payload(self):
        """Test that a channel payload populates snake_case fields."""
        activity = Activity.model_validate(
            {
                "type": "message",
                "id": "abc",
                "channelId": "msteams",
                "serviceUrl": "https://smba.example.com",
                "from": {"id": "user-1", "name": "Ada"},
                "recipient": {"id": "bot-1"},
                "conversation": {"id": "conv-1", "isGroup": True},
                "text": "hi",
            }
        )

        assert activity.channel_id == "msteams"
        assert activity.service_url == "https://smba.example.com"
        assert activity.from_property.id == "user-1"
        assert activity.conversation.is_group is True

    def test_to_dict_uses_aliases_and_drops_none(self):
        """Test serialization to the wire format."""
        activity = Activity(
            type=ActivityTypes.MESSAGE,
            text="hello",
            from_property=ChannelAccount(id="u1"),
            reply_to_id="42",
        )

        data = activity.to_dict()

        assert data["type"] == "message"
        assert data["from"] == {"id": "u1"}
        assert data["replyToId"] == "42"
        assert "speak" not in data

    def test_unknown_fields_are_kept(self):
        """Test that channel specific fields survive a round trip."""
        activity = Activity.model_validate({"type": "message", "customField": {"a": 1}})
        assert activity.to_dict()["customField"] == {"a": 1}

    def test_enum_values_are_stored_as_strings(self):
        activity = Activity(type=ActivityTypes.EVENT)
        assert activity.type == "event"
        assert activity.type == ActivityTypes.EVENT


class TestActivityHelpers:
    """Tests for reply and reference helpers."""

    def test_create_reply_swaps_sender_and_recipient(self, message_activity):
        reply = message_activity.create_reply("pong")

        assert reply.type == ActivityTypes.MESSAGE
        assert reply.text == "pong"
        assert reply.from_property.id == "bot"
        assert reply.recipient.id == "user1"
        assert reply.reply_to_id == "1"
        assert reply.conversation.id == "Convo1"
        assert reply.locale == "en-us"

    def test_create_trace(self, message_activity):
        trace = message_activity.create_trace("Dump", {"x": 1}, label="state")

        assert trace.type == ActivityTypes.TRACE
        assert trace.name == "Dump"
        assert trace.value == {"x": 1}
        assert trace.value_type == "dict"
        assert trace.label == "state"
        assert trace.text is None

    def test_is_type_matches_subtypes(self):
        activity = Activity(type="message/preview")
        assert activity.is_type(ActivityTypes.MESSAGE)
        assert activity.is_type("MESSAGE")
        assert not activity.is_type("event")
        assert not Activity().is_type("message")

    def test_has_content(self):
        assert Activity(text="x").has_content()
        assert Activity(summary="sum").has_content()
        assert not Activity(text="   ").has_content()

    def test_conversation_reference_round_trip(self, message_activity):
        reference = message_activity.get_conversation_reference()

        assert reference.activity_id == "1"
        assert reference.user.id == "user1"
        assert reference.bot.id == "bot"

        outgoing = Activity(type=ActivityTypes.MESSAGE, text="reply")
        outgoing.apply_conversation_reference(reference)

        assert outgoing.from_property.id == "bot"
        assert outgoing.recipient.id == "user1"
        assert outgoing.reply_to_id == "1"
        assert outgoing.channel_id == "test"

    def test_apply_reference_as_incoming(self, message_activity):
        reference = message_activity.get_conversation_reference()
        incoming = Activity(type=ActivityTypes.MESSAGE)
        incoming.apply_conversation_reference(reference, is_incoming=True)

        assert incoming.from_property.id == "user1"
        assert incoming.recipient.id == "bot"
        assert incoming.id == "1"

    def test_conversation_update_reference_has_no_activity_id(self):
        update = Activity(type=ActivityTypes.CONVERSATION_UPDATE, id="7")
        assert update.get_conversation_reference().activity_id is None

    def test_continuation_activity(self):
        reference = ConversationReference(
            channel_id="test",
            service_url="https://test.com",
            user=ChannelAccount(id="u"),
            bot=ChannelAccount(id="b"),
            conversation=ConversationAccount(id="c"),
        )

        activity = reference.get_continuation_activity()

        assert activity.type == ActivityTypes.EVENT
        assert activity.name == "ContinueConversation"
        assert activity.from_property.id == "u"
        assert activity.recipient.id == "b"
        assert activity.id

    def test_get_mentions(self):
        activity = Activity(
            type=ActivityTypes.MESSAGE,
            text="<at>Bot</at> hi",
            entities=[Mention(type="mention", mentioned=ChannelAccount(id="bot"), text="<at>Bot</at>")],
        )

        mentions = activity.get_mentions()

        assert len(mentions) == 1
        assert mentions[0].mentioned.id == "bot"


class TestCardsAndResponses:
    def test_hero_card_to_attachment(self):
        attachment = HeroCard(title="Pick").to_attachment()
        assert attachment.content_type == "application/vnd.microsoft.card.hero"
        assert attachment.content.title == "Pick"

    def test_invoke_response_success(self):
        assert InvokeResponse(status=200).is_successful_status_code()
        assert not InvokeResponse(status=501).is_successful_status_code()


class TestSettings:
    """Tests for environment driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PALAVER_MICROSOFT_APP_ID", raising=False)
        settings = Settings(_env_file=None)

        assert settings.storage == "memory"
        assert settings.auth_enabled is False
        assert settings.qna_configured is False
        assert settings.api_port == 3978

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PALAVER_MICROSOFT_APP_ID", "app-id")
        monkeypatch.setenv("PALAVER_ENV", "production")

        settings = Settings(_env_file=None)

        assert settings.auth_enabled is True
        assert settings.is_production is True

    def test_public_dict_masks_secrets(self):
        settings = Settings(_env_file=None, microsoft_app_password="s3cret", qna_endpoint_key="")
        values = settings.public_dict()

        assert values["microsoft_app_password"] == "********"
        assert values["qna_endpoint_key"] == ""
