"""Channel adapters: Bot Framework HTTP, console and in-process testing."""

from .bot_framework import CONNECTOR_CLIENT_KEY, BotFrameworkAdapter, BotFrameworkAdapterSettings
from .console import ConsoleAdapter
from .test_adapter import TestAdapter, TestFlow

__all__ = [
    "BotFrameworkAdapter",
    "BotFrameworkAdapterSettings",
    "CONNECTOR_CLIENT_KEY",
    "ConsoleAdapter",
    "TestAdapter",
    "TestFlow",
]
