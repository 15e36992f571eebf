"""Unified path-based access to all dialog memory scopes."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from palaver.core import serialization
from palaver.dialogs.object_path import ObjectPath

from .path_resolvers import (
    AtAtPathResolver,
    AtPathResolver,
    DollarPathResolver,
    HashPathResolver,
    PathResolver,
    PercentPathResolver,
)
from .scopes import (
    ClassMemoryScope,
    ConversationMemoryScope,
    DialogClassMemoryScope,
    DialogContextMemoryScope,
    DialogMemoryScope,
    MemoryScope,
    SettingsMemoryScope,
    ThisMemoryScope,
    TurnMemoryScope,
    UserMemoryScope,
)

if TYPE_CHECKING:
    from palaver.dialogs.dialog_context import DialogContext

logger = logging.getLogger(__name__)

_FIRST = ".first()"


def default_memory_scopes() -> list[MemoryScope]:
    return [
        TurnMemoryScope(),
        SettingsMemoryScope(),
        DialogMemoryScope(),
        DialogContextMemoryScope(),
        DialogClassMemoryScope(),
        ClassMemoryScope(),
        ThisMemoryScope(),
        ConversationMemoryScope(),
        UserMemoryScope(),
    ]


def default_path_resolvers() -> list[PathResolver]:
    return [
        DollarPathResolver(),
        HashPathResolver(),
        AtAtPathResolver(),
        AtPathResolver(),
        PercentPathResolver(),
    ]


@dataclass
class DialogStateManagerConfiguration:
    memory_scopes: list[MemoryScope] = field(default_factory=default_memory_scopes)
    path_resolvers: list[PathResolver] = field(default_factory=default_path_resolvers)


class DialogStateManager(MutableMapping):
    """Reads and writes dialog memory by path, e.g. ``user.name`` or ``$answer``.

    The first path segment names a memory scope; the rest is resolved with
    ObjectPath inside that scope's memory. Indexing with a path behaves like
    `get_value` / `set_value`.
    """

    PATH_TRACKER = "dialog._tracker.paths"
    EVENT_COUNTER = "dialog.eventCounter"

    def __init__(self, dialog_context: DialogContext, configuration: DialogStateManagerConfiguration | None = None):
        if dialog_context is None:
            raise TypeError("DialogStateManager(): dialog_context cannot be None.")

        self._dialog_context = dialog_context
        self._version = 0

        turn_state = dialog_context.context.turn_state
        self.configuration = (
            configuration
            or turn_state.get(DialogStateManagerConfiguration)
            or DialogStateManagerConfiguration()
        )
        turn_state[DialogStateManagerConfiguration] = self.configuration

    # ==========================================================================
    # Mapping protocol
    # ==========================================================================

    def __getitem__(self, key: str) -> Any:
        found, value = self.try_get_value(key)
        if not found and key not in self:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set_value(key, value)

    def __delitem__(self, key: str) -> None:
        self.remove_value(key)

    def __iter__(self) -> Iterator[str]:
        return iter([scope.name for scope in self.configuration.memory_scopes])

    def __len__(self) -> int:
        return len(self.configuration.memory_scopes)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get_memory_scope(key) is not None

    # ==========================================================================
    # Scopes
    # ==========================================================================

    def get_memory_scope(self, name: str) -> MemoryScope | None:
        if name is None:
            raise TypeError("name cannot be None.")
        lowered = name.lower()
        for scope in self.configuration.memory_scopes:
            if scope.name.lower() == lowered:
                return scope
        return None

    def resolve_memory_scope(self, path: str) -> tuple[MemoryScope, str]:
        """Split `path` into its memory scope and the path inside it.

        Raises:
            ValueError: If the first segment is not a known scope.
        """
        separators = [i for i in (path.find("."), path.find("[")) if i > 0]
        if separators:
            index = min(separators)
            scope = self.get_memory_scope(path[:index])
            if scope is not None:
                remaining = path[index + 1 :] if path[index] == "." else path[index:]
                return scope, remaining

        scope = self.get_memory_scope(path)
        if scope is None:
            raise ValueError(self._bad_scope_message(path))
        return scope, ""

    def transform_path(self, path: str) -> str:
        for resolver in self.configuration.path_resolvers:
            path = resolver.transform_path(path)
        return path

    def version(self) -> str:
        return str(self._version)

    # ==========================================================================
    # Values
    # ==========================================================================

    def try_get_value(self, path: str) -> tuple[bool, Any]:
        """Look up a path.

        Returns:
            (found, value); a stored None counts as not found.
        """
        if path is None:
            raise TypeError("path cannot be None.")

        path = self.transform_path(path)
        try:
            scope, remaining = self.resolve_memory_scope(path)
        except ValueError:
            return False, None

        if not remaining:
            memory = scope.get_memory(self._dialog_context)
            return memory is not None, memory

        first_index = path.lower().rfind(_FIRST)
        if first_index >= 0:
            after = path[first_index + len(_FIRST) :]
            found, first = self._try_get_first_nested_value(path[:first_index])
            if not found:
                return False, None
            if not after:
                return True, first
            value = ObjectPath.try_get_path_value(first, after.lstrip("."))
            return value is not None, value

        value = ObjectPath.try_get_path_value(self, path)
        return value is not None, value

    def get_value(self, path: str, default: Any = None) -> Any:
        if path is None:
            raise TypeError("path cannot be None.")
        found, value = self.try_get_value(path)
        return value if found else default

    def get_int_value(self, path: str, default: int = 0) -> int:
        found, value = self.try_get_value(path)
        if not found or isinstance(value, bool):
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_bool_value(self, path: str, default: bool = False) -> bool:
        if not path:
            raise ValueError("path cannot be empty.")
        found, value = self.try_get_value(path)
        if not found:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        return default

    def get_string_value(self, path: str, default: str = "") -> str:
        found, value = self.try_get_value(path)
        if not found:
            return default
        return value if isinstance(value, str) else str(value)

    def set_value(self, path: str, value: Any) -> None:
        """Set a value by path.

        Raises:
            ValueError: If `path` is empty or `value` is an unawaited awaitable.
        """
        if inspect.isawaitable(value):
            raise ValueError(f"{path} = You can't pass an unresolved awaitable to set_value.")
        if not path:
            raise ValueError("path cannot be empty.")

        path = self.transform_path(path)
        if self._track_change(path, value):
            scope, remaining = self.resolve_memory_scope(path)
            if not remaining:
                scope.set_memory(self._dialog_context, value)
            else:
                memory = scope.get_memory(self._dialog_context)
                if memory is None:
                    raise ValueError(f"Memory scope '{scope.name}' is not available for {path}.")
                ObjectPath.set_path_value(self, path, value)
        self._version += 1

    def remove_value(self, path: str) -> None:
        if not path or not path.strip():
            raise ValueError("path cannot be empty.")
        path = self.transform_path(path)
        if self._track_change(path, None):
            ObjectPath.remove_path_value(self, path)

    def get_memory_snapshot(self) -> dict[str, Any]:
        """JSON-compatible copy of every scope included in snapshots."""
        snapshot = {}
        for scope in self.configuration.memory_scopes:
            if not scope.include_in_snapshot:
                continue
            memory = scope.get_memory(self._dialog_context)
            if memory is not None:
                snapshot[scope.name] = serialization.to_jsonable(memory)
        return snapshot

    async def load_all_scopes(self) -> None:
        for scope in self.configuration.memory_scopes:
            await scope.load(self._dialog_context, False)

    async def save_all_changes(self) -> None:
        for scope in self.configuration.memory_scopes:
            await scope.save_changes(self._dialog_context, False)

    async def delete_scopes_memory(self, name: str) -> None:
        scope = self.get_memory_scope(name)
        if scope is not None:
            await scope.delete(self._dialog_context)

    # ==========================================================================
    # Change tracking
    # ==========================================================================

    def track_paths(self, paths: list[str]) -> list[str]:
        """Start tracking changes to `paths`; returns their tracker names."""
        tracked = []
        for path in paths:
            segments = ObjectPath.try_resolve_path(self, self.transform_path(path))
            if segments:
                name = "_".join(str(s) for s in segments)
                self.set_value(f"{self.PATH_TRACKER}.{name}", 0)
                tracked.append(name)
        return tracked

    def any_path_changed(self, counter: int, paths: list[str] | None) -> bool:
        """True if any tracked path was written after event `counter`."""
        for path in paths or []:
            if self.get_int_value(f"{self.PATH_TRACKER}.{path}", -1) > counter:
                return True
        return False

    def _track_change(self, path: str, value: Any) -> bool:
        segments = ObjectPath.try_resolve_path(self, path)
        if segments is None:
            return False

        root = segments[1] if len(segments) > 1 else ""
        if isinstance(root, str) and root.startswith("_"):
            return True

        tracked_path = f"{self.PATH_TRACKER}.{'_'.join(str(s) for s in segments)}"
        counter: int | None = None
        if self.try_get_value(tracked_path)[0]:
            counter = self.get_int_value(self.EVENT_COUNTER, 0)
            self.set_value(tracked_path, counter)

        if isinstance(value, dict):
            for key, child in value.items():
                counter = self._check_children(str(key), child, tracked_path, counter)
        return True

    def _check_children(self, name: str, value: Any, path: str, counter: int | None) -> int | None:
        tracked_path = f"{path}_{name.lower()}"
        if self.try_get_value(tracked_path)[0]:
            if counter is None:
                counter = self.get_int_value(self.EVENT_COUNTER, 0)
            self.set_value(tracked_path, counter)

        if isinstance(value, dict):
            for key, child in value.items():
                counter = self._check_children(str(key), child, tracked_path, counter)
        return counter

    def _try_get_first_nested_value(self, path: str) -> tuple[bool, Any]:
        array = ObjectPath.try_get_path_value(self, path)
        if isinstance(array, list) and array:
            first = array[0]
            if isinstance(first, list):
                if first:
                    return True, first[0]
                return False, None
            return True, first
        return False, None

    def _bad_scope_message(self, path: str) -> str:
        names = ",".join(scope.name for scope in self.configuration.memory_scopes)
        return f"{path} does not match memory scopes:[{names}]"
