"""Turn processing runtime: context, middleware, adapters, state and storage."""

from .activity_handler import ActivityHandler, InvokeResponseError
from .adapter import BotAdapter
from .message_factory import MessageFactory
from .middleware import (
    AnonymousReceiveMiddleware,
    AutoSaveStateMiddleware,
    Middleware,
    MiddlewareSet,
    ShowTypingMiddleware,
)
from .recognizer import IntentScore, Recognizer, RecognizerResult, TopIntent
from .state import (
    BotState,
    BotStateSet,
    CachedBotState,
    ConversationState,
    PrivateConversationState,
    StatePropertyAccessor,
    UserState,
)
from .storage import (
    MemoryStorage,
    RedisStorage,
    Storage,
    StoreItem,
    StoreItemConflictError,
    get_storage,
)
from .telemetry import (
    BotTelemetryClient,
    NullTelemetryClient,
    Severity,
    StructlogTelemetryClient,
    TelemetryConstants,
    TelemetryLoggerConstants,
    TelemetryLoggerMiddleware,
)
from .transcript import (
    ConsoleTranscriptLogger,
    MemoryTranscriptStore,
    PagedResult,
    TranscriptInfo,
    TranscriptLogger,
    TranscriptLoggerMiddleware,
    TranscriptStore,
)
from .turn_context import TurnContext

__all__ = [
    # Turn
    "TurnContext",
    "BotAdapter",
    "ActivityHandler",
    "InvokeResponseError",
    "MessageFactory",
    # Middleware
    "Middleware",
    "MiddlewareSet",
    "AnonymousReceiveMiddleware",
    "AutoSaveStateMiddleware",
    "ShowTypingMiddleware",
    "TranscriptLoggerMiddleware",
    "TelemetryLoggerMiddleware",
    # State
    "BotState",
    "BotStateSet",
    "CachedBotState",
    "ConversationState",
    "PrivateConversationState",
    "StatePropertyAccessor",
    "UserState",
    # Storage
    "Storage",
    "StoreItem",
    "StoreItemConflictError",
    "MemoryStorage",
    "RedisStorage",
    "get_storage",
    # Transcripts
    "TranscriptLogger",
    "TranscriptStore",
    "MemoryTranscriptStore",
    "ConsoleTranscriptLogger",
    "PagedResult",
    "TranscriptInfo",
    # Telemetry
    "BotTelemetryClient",
    "NullTelemetryClient",
    "StructlogTelemetryClient",
    "Severity",
    "TelemetryConstants",
    "TelemetryLoggerConstants",
    # Recognizers
    "Recognizer",
    "RecognizerResult",
    "IntentScore",
    "TopIntent",
]
