"""Tests for BotFrameworkAdapter."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from palaver.adapters import BotFrameworkAdapter, BotFrameworkAdapterSettings
from palaver.adapters.bot_framework import CONNECTOR_CLIENT_KEY
from palaver.connector import (
    AuthenticationConstants,
    ClaimsIdentity,
    ConnectorAuthenticationError,
    JwtTokenValidation,
    MicrosoftAppCredentials,
)
from palaver.core import ActivityHandler, BotAdapter
from palaver.models import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ConversationReference,
    DeliveryModes,
    Settings,
)

SERVICE_URL = "https://channel.test/"


class Channel:
    """Fake connector service recording every call."""

    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/v3/conversations":
            return httpx.Response(200, json={"id": "new-conv", "activityId": "a1"})
        if request.method == "GET" and path.endswith("/members"):
            return httpx.Response(200, json=[{"id": "user1", "name": "Ada"}])
        if request.method == "DELETE":
            return httpx.Response(200)
        return httpx.Response(200, json={"id": "reply-1"})

    @property
    def bodies(self):
        return [json.loads(r.content) if r.content else None for r in self.requests]


@pytest.fixture(autouse=True)
def isolated_auth_caches(monkeypatch):
    MicrosoftAppCredentials.clear_caches()
    monkeypatch.setattr(JwtTokenValidation, "_key_resolvers", {})
    yield
    MicrosoftAppCredentials.clear_caches()


@pytest.fixture
def channel():
    return Channel()


def make_adapter(channel, **settings):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(channel))
    return BotFrameworkAdapter(BotFrameworkAdapterSettings(http_client=http_client, **settings))


def inbound(text="hi", **fields):
    values = {
        "type": ActivityTypes.MESSAGE,
        "id": "act1",
        "text": text,
        "channel_id": "webchat",
        "service_url": SERVICE_URL,
        "from_property": ChannelAccount(id="user1", name="Ada"),
        "recipient": ChannelAccount(id="bot", name="Bot"),
        "conversation": ConversationAccount(id="conv1"),
    }
    values.update(fields)
    return Activity(**values)


async def echo(context):
    await context.send_activity(f"echo: {context.activity.text}")


class CardBot(ActivityHandler):
    async def on_adaptive_card_invoke(self, turn_context, invoke_value):
        return {"saved": invoke_value["action"]["verb"]}


class TestSettings:
    def test_from_settings(self):
        settings = Settings(
            microsoft_app_id="app",
            microsoft_app_password="pw",
            channel_auth_tenant="contoso.com",
        )

        adapter_settings = BotFrameworkAdapterSettings.from_settings(settings)

        assert adapter_settings.app_id == "app"
        assert adapter_settings.app_password == "pw"
        assert adapter_settings.channel_auth_tenant == "contoso.com"

    def test_open_id_metadata_override(self, channel):
        make_adapter(channel, open_id_metadata="https://metadata.test/openid")

        resolver = JwtTokenValidation.get_key_resolver(
            AuthenticationConstants.TO_BOT_FROM_CHANNEL_OPENID_METADATA_URL
        )
        assert resolver.metadata_url == "https://metadata.test/openid"


class TestProcessActivity:
    """Tests for inbound turns."""

    @pytest.mark.asyncio
    async def test_message_reply_goes_to_connector(self, channel):
        adapter = make_adapter(channel)

        result = await adapter.process_activity(inbound("hi"), "", echo)

        assert result is None
        request = channel.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://channel.test/v3/conversations/conv1/activities/act1"
        body = channel.bodies[0]
        assert body["text"] == "echo: hi"
        assert body["replyToId"] == "act1"
        assert body["from"]["id"] == "bot"
        assert body["recipient"]["id"] == "user1"

    @pytest.mark.asyncio
    async def test_authentication_required_when_app_id_set(self, channel):
        adapter = make_adapter(channel, app_id="app", app_password="pw")
        logic = AsyncMock()

        with pytest.raises(ConnectorAuthenticationError):
            await adapter.process_activity(inbound(), "", logic)

        logic.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_identity_and_connector_in_turn_state(self, channel):
        adapter = make_adapter(channel)
        seen = {}

        async def logic(context):
            seen.update(context.turn_state)

        await adapter.process_activity(inbound(), None, logic)

        assert seen[BotAdapter.BOT_IDENTITY_KEY].authentication_type == "anonymous"
        assert seen[BotAdapter.OAUTH_SCOPE_KEY] == AuthenticationConstants.TO_CHANNEL_FROM_BOT_OAUTH_SCOPE
        assert seen[CONNECTOR_CLIENT_KEY].base_url == "https://channel.test"

    @pytest.mark.asyncio
    async def test_skill_identity_uses_caller_scope(self, channel):
        adapter = make_adapter(channel)
        identity = ClaimsIdentity({"ver": "1.0", "aud": "bot-b", "appid": "bot-a"}, True)
        seen = {}

        async def logic(context):
            seen.update(context.turn_state)

        await adapter.process_activity_with_identity(inbound(), identity, logic)

        assert seen[BotAdapter.OAUTH_SCOPE_KEY] == "bot-a"
        assert seen[CONNECTOR_CLIENT_KEY].credentials.oauth_scope == "bot-a"

    @pytest.mark.asyncio
    async def test_invoke_response(self, channel):
        adapter = make_adapter(channel)
        invoke = inbound(
            type=ActivityTypes.INVOKE,
            name="adaptiveCard/action",
            value={"action": {"type": "Action.Execute", "verb": "save"}},
        )

        result = await adapter.process_activity(invoke, "", CardBot().on_turn)

        assert result.status == 200
        assert result.body == {"saved": "save"}
        assert channel.requests == []

    @pytest.mark.asyncio
    async def test_unhandled_invoke_is_501(self, channel):
        adapter = make_adapter(channel)

        silent = await adapter.process_activity(inbound(type=ActivityTypes.INVOKE, name="x"), "", AsyncMock())
        unknown = await adapter.process_activity(
            inbound(type=ActivityTypes.INVOKE, name="unknown"), "", CardBot().on_turn
        )

        assert silent.status == 501
        assert unknown.status == 501

    @pytest.mark.asyncio
    async def test_expect_replies_are_buffered(self, channel):
        adapter = make_adapter(channel)

        result = await adapter.process_activity(
            inbound("hi", delivery_mode=DeliveryModes.EXPECT_REPLIES), "", echo
        )

        assert result.status == 200
        assert [a["text"] for a in result.body["activities"]] == ["echo: hi"]
        assert channel.requests == []

    @pytest.mark.asyncio
    async def test_traces_only_sent_to_emulator(self, channel):
        adapter = make_adapter(channel)

        async def trace(context):
            await context.send_trace_activity("debug", {"a": 1})

        await adapter.process_activity(inbound(), "", trace)
        assert channel.requests == []

        await adapter.process_activity(inbound(channel_id="emulator"), "", trace)
        assert channel.bodies[0]["type"] == "trace"

    @pytest.mark.asyncio
    async def test_turn_errors_go_to_handler(self, channel):
        adapter = make_adapter(channel)
        adapter.on_turn_error = AsyncMock()
        error = ValueError("boom")

        async def fail(context):
            raise error

        result = await adapter.process_activity(inbound(), "", fail)

        assert result is None
        context, raised = adapter.on_turn_error.await_args.args
        assert raised is error
        assert context.activity.id == "act1"


class TestOutbound:
    @pytest.mark.asyncio
    async def test_update_and_delete(self, channel):
        adapter = make_adapter(channel)

        async def edit(context):
            await context.update_activity(Activity(type=ActivityTypes.MESSAGE, id="m1", text="edited"))
            await context.delete_activity("m1")

        await adapter.process_activity(inbound(), "", edit)

        update, delete = channel.requests
        assert update.method == "PUT"
        assert update.url.path == "/v3/conversations/conv1/activities/m1"
        assert channel.bodies[0]["text"] == "edited"
        assert delete.method == "DELETE"
        assert delete.url.path == "/v3/conversations/conv1/activities/m1"

    @pytest.mark.asyncio
    async def test_conversation_members(self, channel):
        adapter = make_adapter(channel)
        members = []

        async def logic(context):
            members.extend(await adapter.get_conversation_members(context))

        await adapter.process_activity(inbound(), "", logic)

        assert [m.name for m in members] == ["Ada"]
        assert channel.requests[0].url.path == "/v3/conversations/conv1/members"

    @pytest.mark.asyncio
    async def test_continue_conversation(self, channel):
        adapter = make_adapter(channel, app_id="bot-app", app_password="pw")
        reference = ConversationReference(
            channel_id="webchat",
            service_url=SERVICE_URL,
            conversation=ConversationAccount(id="conv1"),
            bot=ChannelAccount(id="bot"),
            user=ChannelAccount(id="user1"),
        )
        seen = {}

        async def proactive(context):
            seen["identity"] = context.turn_state[BotAdapter.BOT_IDENTITY_KEY]
            seen["name"] = context.activity.name
            await context.send_activity("reminder")

        await adapter.continue_conversation(reference, proactive)

        assert seen["name"] == "ContinueConversation"
        assert seen["identity"].get_claim_value("aud") == "bot-app"
        assert channel.requests[0].url.path.startswith("/v3/conversations/conv1/activities")
        assert channel.bodies[0]["text"] == "reminder"
        assert "Authorization" not in channel.requests[0].headers

    @pytest.mark.asyncio
    async def test_continue_conversation_requires_reference(self, channel):
        with pytest.raises(TypeError):
            await make_adapter(channel).continue_conversation(None, AsyncMock())

    @pytest.mark.asyncio
    async def test_create_conversation(self, channel):
        adapter = make_adapter(channel)
        reference = ConversationReference(
            channel_id="msteams",
            service_url=SERVICE_URL,
            bot=ChannelAccount(id="bot"),
            user=ChannelAccount(id="user1"),
        )
        seen = []

        async def logic(context):
            seen.append(context.activity)

        await adapter.create_conversation(reference, logic)

        created = seen[0]
        assert created.name == "CreateConversation"
        assert created.conversation.id == "new-conv"
        assert created.id == "a1"
        body = channel.bodies[0]
        assert body["members"] == [{"id": "user1"}]
        assert body["isGroup"] is False

    def test_connector_clients_are_cached(self, channel):
        adapter = make_adapter(channel)

        first = adapter.create_connector_client(SERVICE_URL)

        assert adapter.create_connector_client(SERVICE_URL) is first
        assert adapter.create_connector_client("https://other.test/") is not first
        with pytest.raises(TypeError):
            adapter.create_connector_client(None)
