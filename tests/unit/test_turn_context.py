"""Tests for TurnContext."""

import pytest

from palaver.core import TurnContext
from palaver.core.turn_context import is_expecting_input
from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    DeliveryModes,
    InputHints,
    Mention,
    ResourceResponse,
)


class TestTurnContextConstruction:
    def test_requires_adapter(self, message_activity):
        with pytest.raises(TypeError):
            TurnContext(None, message_activity)

    def test_requires_activity(self, adapter):
        with pytest.raises(TypeError):
            TurnContext(adapter, None)

    def test_responded_can_only_be_set_true(self, turn_context):
        assert turn_context.responded is False
        with pytest.raises(ValueError):
            turn_context.responded = False
        turn_context.responded = True
        assert turn_context.responded is True

    def test_locale_lives_in_turn_state(self, turn_context):
        turn_context.locale = "fr-fr"
        assert turn_context.turn_state["turn.locale"] == "fr-fr"
        turn_context.locale = None
        assert turn_context.locale is None


class TestSendActivity:
    """Tests for outgoing sends."""

    @pytest.mark.asyncio
    async def test_send_text_addresses_reply(self, adapter, turn_context):
        response = await turn_context.send_activity("hi there")

        reply = adapter.get_next_reply()
        assert reply.text == "hi there"
        assert reply.from_property.id == "bot"
        assert reply.recipient.id == "user1"
        assert reply.reply_to_id == "1"
        assert response.id == reply.id
        assert turn_context.responded is True

    @pytest.mark.asyncio
    async def test_send_with_speak_and_hint(self, adapter, turn_context):
        await turn_context.send_activity("q?", speak="<speak>q</speak>", input_hint=InputHints.EXPECTING_INPUT)

        reply = adapter.get_next_reply()
        assert reply.speak == "<speak>q</speak>"
        assert is_expecting_input(reply)

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, turn_context):
        with pytest.raises(ValueError):
            await turn_context.send_activity("")

    @pytest.mark.asyncio
    async def test_send_activities_requires_items(self, turn_context):
        with pytest.raises(ValueError):
            await turn_context.send_activities([])

    @pytest.mark.asyncio
    async def test_trace_does_not_mark_responded(self, turn_context):
        await turn_context.send_trace_activity("debug", {"a": 1})
        assert turn_context.responded is False

    @pytest.mark.asyncio
    async def test_missing_type_defaults_to_message(self, adapter, turn_context):
        await turn_context.send_activity(Activity(text="typed later"))
        assert adapter.get_next_reply().type == ActivityTypes.MESSAGE

    @pytest.mark.asyncio
    async def test_send_handlers_run_in_order(self, adapter, turn_context):
        calls = []

        async def first(context, activities, next_send):
            calls.append("first")
            activities[0].text = activities[0].text.upper()
            return await next_send()

        async def second(context, activities, next_send):
            calls.append("second")
            return await next_send()

        turn_context.on_send_activities(first).on_send_activities(second)
        await turn_context.send_activity("shout")

        assert calls == ["first", "second"]
        assert adapter.get_next_reply().text == "SHOUT"

    @pytest.mark.asyncio
    async def test_handler_can_suppress_send(self, adapter, turn_context):
        async def swallow(context, activities, next_send):
            return []

        turn_context.on_send_activities(swallow)
        response = await turn_context.send_activity("lost")

        assert response == ResourceResponse()
        assert adapter.get_next_reply() is None
        assert turn_context.responded is False

    @pytest.mark.asyncio
    async def test_expect_replies_buffers_activities(self, adapter, message_activity):
        message_activity.delivery_mode = DeliveryModes.EXPECT_REPLIES
        context = TurnContext(adapter, message_activity)

        await context.send_activity("buffered")

        assert adapter.get_next_reply() is None
        assert [a.text for a in context.buffered_reply_activities] == ["buffered"]
        assert context.responded is True

    def test_register_none_handler(self, turn_context):
        with pytest.raises(TypeError):
            turn_context.on_send_activities(None)


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_activity(self, adapter, turn_context):
        activity = Activity(type=ActivityTypes.MESSAGE, id="99", text="edited")

        response = await turn_context.update_activity(activity)

        assert response.id == "99"
        assert adapter.updated_activities[0].text == "edited"
        assert adapter.updated_activities[0].conversation.id == "Convo1"

    @pytest.mark.asyncio
    async def test_update_handler_sees_activity(self, turn_context):
        seen = []

        async def handler(context, activity, next_update):
            seen.append(activity.text)
            return await next_update()

        turn_context.on_update_activity(handler)
        await turn_context.update_activity(Activity(type=ActivityTypes.MESSAGE, id="1", text="v2"))

        assert seen == ["v2"]

    @pytest.mark.asyncio
    async def test_delete_by_id(self, adapter, turn_context):
        await turn_context.delete_activity("55")

        reference = adapter.deleted_activities[0]
        assert reference.activity_id == "55"
        assert reference.conversation.id == "Convo1"

    @pytest.mark.asyncio
    async def test_delete_by_reference(self, adapter, turn_context, message_activity):
        reference = message_activity.get_conversation_reference()
        await turn_context.delete_activity(reference)
        assert adapter.deleted_activities == [reference]

    @pytest.mark.asyncio
    async def test_delete_blank_id(self, turn_context):
        with pytest.raises(ValueError):
            await turn_context.delete_activity("  ")


class TestStaticHelpers:
    def test_get_reply_conversation_reference(self, message_activity):
        reference = TurnContext.get_reply_conversation_reference(
            message_activity, ResourceResponse(id="reply-1")
        )
        assert reference.activity_id == "reply-1"

    def test_remove_recipient_mention(self):
        activity = Activity(
            type=ActivityTypes.MESSAGE,
            text="<at>Bot</at> what's up",
            recipient=ChannelAccount(id="bot"),
            entities=[Mention(type="mention", mentioned=ChannelAccount(id="bot"), text="<at>Bot</at>")],
        )

        assert TurnContext.remove_recipient_mention(activity) == "what's up"

    def test_remove_mention_text_ignores_other_ids(self):
        activity = Activity(
            type=ActivityTypes.MESSAGE,
            text="<at>Ann</at> hello",
            entities=[Mention(type="mention", mentioned=ChannelAccount(id="ann"), text="<at>Ann</at>")],
        )

        assert TurnContext.remove_mention_text(activity, "bot") == "<at>Ann</at> hello"
