"""Dialog memory: scopes, path shorthands and the state manager."""

from .path_resolvers import (
    AliasPathResolver,
    AtAtPathResolver,
    AtPathResolver,
    DollarPathResolver,
    HashPathResolver,
    PathResolver,
    PercentPathResolver,
)
from .scopes import (
    BotStateMemoryScope,
    ClassMemoryScope,
    ConversationMemoryScope,
    DialogClassMemoryScope,
    DialogContextMemoryScope,
    DialogMemoryScope,
    MemoryScope,
    ScopePath,
    SettingsMemoryScope,
    ThisMemoryScope,
    TurnMemoryScope,
    UserMemoryScope,
)
from .state_manager import DialogStateManager, DialogStateManagerConfiguration

__all__ = [
    # Manager
    "DialogStateManager",
    "DialogStateManagerConfiguration",
    # Scopes
    "BotStateMemoryScope",
    "ClassMemoryScope",
    "ConversationMemoryScope",
    "DialogClassMemoryScope",
    "DialogContextMemoryScope",
    "DialogMemoryScope",
    "MemoryScope",
    "ScopePath",
    "SettingsMemoryScope",
    "ThisMemoryScope",
    "TurnMemoryScope",
    "UserMemoryScope",
    # Path resolvers
    "AliasPathResolver",
    "AtAtPathResolver",
    "AtPathResolver",
    "DollarPathResolver",
    "HashPathResolver",
    "PathResolver",
    "PercentPathResolver",
]
