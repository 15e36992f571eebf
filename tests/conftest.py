"""Pytest configuration and shared fixtures."""

import pytest

from palaver.adapters import TestAdapter
from palaver.core import ConversationState, MemoryStorage, TurnContext, UserState
from palaver.models import Activity, ActivityTypes, ChannelAccount, ConversationAccount, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage():
    """Fresh in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def conversation_state(storage):
    return ConversationState(storage)


@pytest.fixture
def user_state(storage):
    return UserState(storage)


@pytest.fixture
def adapter():
    """Test adapter with the default test conversation."""
    return TestAdapter()


@pytest.fixture
def message_activity():
    """Create a message activity addressed like the test adapter's."""
    return Activity(
        type=ActivityTypes.MESSAGE,
        id="1",
        text="hello",
        channel_id="test",
        service_url="https://test.com",
        from_property=ChannelAccount(id="user1", name="User1"),
        recipient=ChannelAccount(id="bot", name="Bot"),
        conversation=ConversationAccount(id="Convo1"),
        locale="en-us",
    )


@pytest.fixture
def turn_context(adapter, message_activity):
    return TurnContext(adapter, message_activity)
