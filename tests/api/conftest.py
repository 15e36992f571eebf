"""Fixtures for API tests."""

import httpx
import pytest
from fastapi.testclient import TestClient

from palaver.adapters import BotFrameworkAdapter, BotFrameworkAdapterSettings
from palaver.api.main import create_app
from palaver.core import ActivityHandler


class EchoBot(ActivityHandler):
    async def on_message_activity(self, turn_context):
        await turn_context.send_activity(f"echo: {turn_context.activity.text}")

    async def on_adaptive_card_invoke(self, turn_context, invoke_value):
        return {"verb": invoke_value["action"]["verb"]}


class ChannelRecorder:
    """Connector service stand-in that records outgoing activities."""

    def __init__(self):
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return httpx.Response(200, json={"id": "reply-1"})


@pytest.fixture
def client():
    """Test client for the app with the demo bot."""
    with TestClient(create_app()) as client:
        yield client


@pytest.fixture
def channel():
    return ChannelRecorder()


@pytest.fixture
def echo_client(channel):
    """Test client for an echo bot whose replies go to the recorded channel."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(channel))
    adapter = BotFrameworkAdapter(BotFrameworkAdapterSettings(http_client=http_client))
    with TestClient(create_app(bot=EchoBot(), adapter=adapter)) as client:
        yield client


@pytest.fixture
def secured_client():
    """Test client whose adapter requires channel authentication."""
    adapter = BotFrameworkAdapter(BotFrameworkAdapterSettings(app_id="app-id", app_password="secret"))
    with TestClient(create_app(bot=EchoBot(), adapter=adapter)) as client:
        yield client


@pytest.fixture
def message_payload():
    """Message activity as a channel would post it."""
    return {
        "type": "message",
        "id": "act1",
        "text": "hello",
        "channelId": "webchat",
        "serviceUrl": "https://channel.test/",
        "from": {"id": "user1", "name": "Ada"},
        "recipient": {"id": "bot", "name": "Bot"},
        "conversation": {"id": "conv1"},
        "locale": "en-us",
    }
