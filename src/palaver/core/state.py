"""Bot state management.

State is loaded from storage once per turn into a cache held in turn
state, read and modified through property accessors, and written back
only when it changed.
"""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from . import serialization
from .storage import Storage
from .turn_context import TurnContext

logger = logging.getLogger(__name__)


class CachedBotState:
    """Turn-cached copy of a state dict plus the hash it was loaded with."""

    def __init__(self, state: dict[str, Any] | None = None):
        self.state: dict[str, Any] = state if state is not None else {}
        self.hash = self.compute_hash(self.state)

    @property
    def is_changed(self) -> bool:
        return self.hash != self.compute_hash(self.state)

    @staticmethod
    def compute_hash(obj: Any) -> str:
        if obj is None:
            return ""
        try:
            return json.dumps(serialization.to_jsonable(obj), sort_keys=True)
        except TypeError:
            return repr(obj)


class BotState(ABC):
    """Base class for state scoped to some part of a conversation.

    Args:
        storage: Backing store for the state.
        context_service_key: Key under which the cached state lives in turn state.
    """

    def __init__(self, storage: Storage, context_service_key: str):
        if storage is None:
            raise TypeError("BotState requires a storage")
        if not context_service_key:
            raise ValueError("context_service_key is required")
        self._storage = storage
        self._context_service_key = context_service_key

    def create_property(self, name: str) -> "StatePropertyAccessor":
        """Create a named accessor for a value in this state."""
        if not name:
            raise ValueError("BotState.create_property(): name cannot be empty.")
        return StatePropertyAccessor(self, name)

    def get_cached_state(self, context: TurnContext) -> CachedBotState | None:
        return context.turn_state.get(self._context_service_key)

    def get(self, context: TurnContext) -> dict[str, Any] | None:
        """The cached state dict for this turn, or None if not loaded."""
        cached = self.get_cached_state(context)
        return cached.state if cached is not None else None

    async def load(self, context: TurnContext, force: bool = False) -> None:
        """Read state into the turn cache.

        Args:
            context: The context for the current turn.
            force: Re-read from storage even if already cached.
        """
        if context is None:
            raise TypeError("BotState.load(): context cannot be None.")

        context.turn_state[type(self)] = self
        cached = self.get_cached_state(context)
        if force or cached is None or cached.state is None:
            key = self.get_storage_key(context)
            items = await self._storage.read([key])
            context.turn_state[self._context_service_key] = CachedBotState(items.get(key))

    async def save_changes(self, context: TurnContext, force: bool = False) -> None:
        """Write the cached state back to storage if it changed.

        Args:
            context: The context for the current turn.
            force: Write even if the state is unchanged.
        """
        if context is None:
            raise TypeError("BotState.save_changes(): context cannot be None.")

        cached = self.get_cached_state(context)
        if cached is None:
            return
        if force or cached.is_changed:
            key = self.get_storage_key(context)
            await self._storage.write({key: cached.state})
            cached.hash = cached.compute_hash(cached.state)

    async def clear_state(self, context: TurnContext) -> None:
        """Replace the cached state with an empty one; saved on the next save."""
        if context is None:
            raise TypeError("BotState.clear_state(): context cannot be None.")
        cleared = CachedBotState()
        # Empty hash forces the next save to overwrite storage.
        cleared.hash = ""
        context.turn_state[self._context_service_key] = cleared

    async def delete(self, context: TurnContext) -> None:
        """Drop the cached state and remove it from storage."""
        if context is None:
            raise TypeError("BotState.delete(): context cannot be None.")
        context.turn_state.pop(self._context_service_key, None)
        await self._storage.delete([self.get_storage_key(context)])

    @abstractmethod
    def get_storage_key(self, context: TurnContext) -> str:
        """Storage key for the state belonging to the current turn."""
        pass

    async def get_property_value(self, context: TurnContext, property_name: str) -> Any:
        cached = self._require_cache(context)
        return cached.state.get(property_name)

    async def set_property_value(self, context: TurnContext, property_name: str, value: Any) -> None:
        cached = self._require_cache(context)
        cached.state[property_name] = value

    async def delete_property_value(self, context: TurnContext, property_name: str) -> None:
        cached = self._require_cache(context)
        cached.state.pop(property_name, None)

    def _require_cache(self, context: TurnContext) -> CachedBotState:
        if context is None:
            raise TypeError("context cannot be None")
        cached = self.get_cached_state(context)
        if cached is None:
            raise RuntimeError(f"{type(self).__name__} has not been loaded for this turn.")
        return cached


class ConversationState(BotState):
    """State shared by everyone in a conversation."""

    def __init__(self, storage: Storage):
        super().__init__(storage, "ConversationState")

    def get_storage_key(self, context: TurnContext) -> str:
        activity = context.activity
        channel_id = activity.channel_id
        if not channel_id:
            raise ValueError("invalid activity-missing channel_id")
        if activity.conversation is None or not activity.conversation.id:
            raise ValueError("invalid activity-missing conversation.id")
        return f"{channel_id}/conversations/{activity.conversation.id}"


class UserState(BotState):
    """State that follows a user across conversations on a channel."""

    def __init__(self, storage: Storage):
        super().__init__(storage, "UserState")

    def get_storage_key(self, context: TurnContext) -> str:
        activity = context.activity
        channel_id = activity.channel_id
        if not channel_id:
            raise ValueError("invalid activity-missing channel_id")
        if activity.from_property is None or not activity.from_property.id:
            raise ValueError("invalid activity-missing from.id")
        return f"{channel_id}/users/{activity.from_property.id}"


class PrivateConversationState(BotState):
    """State for one user within one conversation."""

    def __init__(self, storage: Storage):
        super().__init__(storage, "PrivateConversationState")

    def get_storage_key(self, context: TurnContext) -> str:
        activity = context.activity
        channel_id = activity.channel_id
        if not channel_id:
            raise ValueError("invalid activity-missing channel_id")
        if activity.conversation is None or not activity.conversation.id:
            raise ValueError("invalid activity-missing conversation.id")
        if activity.from_property is None or not activity.from_property.id:
            raise ValueError("invalid activity-missing from.id")
        return (
            f"{channel_id}/conversations/{activity.conversation.id}"
            f"/users/{activity.from_property.id}"
        )


class StatePropertyAccessor:
    """Reads and writes one named property of a BotState."""

    def __init__(self, bot_state: BotState, name: str):
        self._bot_state = bot_state
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def get(
        self,
        context: TurnContext,
        default_value_or_factory: Callable[[], Any] | Any = None,
    ) -> Any:
        """Get the property value, storing a default when it is missing.

        Args:
            context: The context for the current turn.
            default_value_or_factory: A factory called for the default, or a
                value that is deep-copied before being stored.

        Returns:
            The stored value, the new default, or None.
        """
        await self._bot_state.load(context, False)
        value = await self._bot_state.get_property_value(context, self._name)
        if value is not None or default_value_or_factory is None:
            return value

        if callable(default_value_or_factory):
            value = default_value_or_factory()
        else:
            value = copy.deepcopy(default_value_or_factory)
        await self.set(context, value)
        return value

    async def set(self, context: TurnContext, value: Any) -> None:
        await self._bot_state.load(context, False)
        await self._bot_state.set_property_value(context, self._name, value)

    async def delete(self, context: TurnContext) -> None:
        await self._bot_state.load(context, False)
        await self._bot_state.delete_property_value(context, self._name)


class BotStateSet:
    """A group of BotState objects loaded and saved together."""

    def __init__(self, *bot_states: BotState):
        self.bot_states: list[BotState] = list(bot_states)

    def add(self, bot_state: BotState) -> "BotStateSet":
        if bot_state is None:
            raise TypeError("bot_state cannot be None")
        self.bot_states.append(bot_state)
        return self

    async def load_all(self, context: TurnContext, force: bool = False) -> None:
        await asyncio.gather(*(state.load(context, force) for state in self.bot_states))

    async def save_all_changes(self, context: TurnContext, force: bool = False) -> None:
        await asyncio.gather(
            *(state.save_changes(context, force) for state in self.bot_states)
        )
