"""Path-based access into nested dicts, lists and objects.

Paths look like ``user.profile.name``, ``items[0]``, ``user['first name']``
or ``items[turn.index]``. Unquoted bracket contents are themselves paths,
resolved against the root object to get the key or index to use.
"""

import copy
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any

from pydantic import BaseModel


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ObjectPath:
    @staticmethod
    def has_value(obj: Any, path: str) -> bool:
        found, _ = ObjectPath._try_get(obj, path)
        return found

    @staticmethod
    def get_path_value(obj: Any, path: str, default: Any = MISSING) -> Any:
        """Get the value at `path`.

        Raises:
            KeyError: If nothing is at `path` and no default was given.
        """
        found, value = ObjectPath._try_get(obj, path)
        if found:
            return value
        if default is MISSING:
            raise KeyError(f"Key {path} not found")
        return default

    @staticmethod
    def try_get_path_value(obj: Any, path: str) -> Any:
        """Get the value at `path`, or None."""
        _, value = ObjectPath._try_get(obj, path)
        return value

    @staticmethod
    def set_path_value(obj: Any, path: str, value: Any) -> None:
        """Set the value at `path`, creating intermediate dicts and lists."""
        segments = ObjectPath.try_resolve_path(obj, path)
        if not segments:
            return

        current = obj
        for index, segment in enumerate(segments[:-1]):
            next_segment = segments[index + 1]
            found, child = ObjectPath._get_segment(current, segment)
            if not found or child is None:
                child = [] if isinstance(next_segment, int) else {}
                ObjectPath._set_segment(current, segment, child)
            current = child

        ObjectPath._set_segment(current, segments[-1], value)

    @staticmethod
    def remove_path_value(obj: Any, path: str) -> None:
        segments = ObjectPath.try_resolve_path(obj, path)
        if not segments:
            return

        current = obj
        for segment in segments[:-1]:
            found, current = ObjectPath._get_segment(current, segment)
            if not found or current is None:
                return

        last = segments[-1]
        if isinstance(last, int):
            if isinstance(current, list) and 0 <= last < len(current):
                current.pop(last)
        elif isinstance(current, MutableMapping):
            key = ObjectPath._find_key(current, last)
            if key is not None:
                del current[key]
        elif hasattr(current, last):
            setattr(current, last, None)

    @staticmethod
    def try_resolve_path(obj: Any, path: str, evaluate: bool = False) -> list[str | int] | None:
        """Split a path into segments.

        Args:
            obj: Root object, used to evaluate indirect ``[a.b]`` segments.
            path: Path to split.
            evaluate: Resolve a trailing ``.first()`` against the data.

        Returns:
            Keys (str) and list indexes (int), or None if an indirect
            segment could not be resolved.
        """
        segments: list[str | int] = []
        if not path:
            return segments

        path = path.strip()
        if path.endswith(".first()"):
            path = path[: -len(".first()")]
            first = True
        else:
            first = False

        word = ""
        position = 0
        while position < len(path):
            char = path[position]
            if char == ".":
                if word:
                    segments.append(word)
                word = ""
            elif char == "[":
                if word:
                    segments.append(word)
                word = ""
                close = ObjectPath._matching_bracket(path, position)
                if close < 0:
                    return None
                inner = path[position + 1 : close].strip()
                segment = ObjectPath._bracket_segment(obj, inner)
                if segment is None:
                    return None
                segments.append(segment)
                position = close
            else:
                word += char
            position += 1

        if word:
            segments.append(word)

        if first and evaluate:
            found, value = ObjectPath._walk(obj, segments)
            if not found or not isinstance(value, list) or not value:
                return None
            segments.append(0)
            if isinstance(value[0], list) and value[0]:
                segments.append(0)
        elif first:
            segments.append(0)

        return segments

    @staticmethod
    def for_each_property(obj: Any, action: Callable[[str, Any], None]) -> None:
        for name, value in ObjectPath._items(obj):
            action(name, value)

    @staticmethod
    def get_properties(obj: Any) -> list[str]:
        return [name for name, _ in ObjectPath._items(obj)]

    @staticmethod
    def contains_property(obj: Any, name: str) -> bool:
        if obj is None or not name:
            return False
        if isinstance(obj, Mapping):
            return ObjectPath._find_key(obj, name) is not None
        return name in ObjectPath.get_properties(obj)

    @staticmethod
    def assign(start: Any, overlay: Any) -> Any:
        """Copy of `start` with the top-level non-None properties of `overlay` applied."""
        if start is None:
            return ObjectPath.clone(overlay)
        if overlay is None:
            return ObjectPath.clone(start)

        result = ObjectPath.clone(start)
        for name, value in ObjectPath._items(overlay):
            if value is not None:
                ObjectPath._set_segment(result, name, copy.deepcopy(value))
        return result

    @staticmethod
    def merge(start: Any, overlay: Any) -> Any:
        """Deep merge: nested dicts are merged, other values from `overlay` win."""
        if start is None:
            return ObjectPath.clone(overlay)
        if overlay is None:
            return ObjectPath.clone(start)

        result = ObjectPath.clone(start)
        for name, value in ObjectPath._items(overlay):
            if value is None:
                continue
            found, existing = ObjectPath._get_segment(result, name)
            if found and isinstance(existing, dict) and isinstance(value, dict):
                ObjectPath._set_segment(result, name, ObjectPath.merge(existing, value))
            else:
                ObjectPath._set_segment(result, name, copy.deepcopy(value))
        return result

    @staticmethod
    def clone(obj: Any) -> Any:
        return copy.deepcopy(obj)

    # ==========================================================================
    # Internals
    # ==========================================================================

    @staticmethod
    def _try_get(obj: Any, path: str) -> tuple[bool, Any]:
        if obj is None:
            return False, None
        if not path:
            return True, obj
        segments = ObjectPath.try_resolve_path(obj, path, evaluate=True)
        if segments is None:
            return False, None
        return ObjectPath._walk(obj, segments)

    @staticmethod
    def _walk(obj: Any, segments: list[str | int]) -> tuple[bool, Any]:
        current = obj
        for segment in segments:
            found, current = ObjectPath._get_segment(current, segment)
            if not found:
                return False, None
        return True, current

    @staticmethod
    def _matching_bracket(path: str, start: int) -> int:
        depth = 0
        quote: str | None = None
        for position in range(start, len(path)):
            char = path[position]
            if quote:
                if char == quote:
                    quote = None
            elif char in "'\"":
                quote = char
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    return position
        return -1

    @staticmethod
    def _bracket_segment(obj: Any, inner: str) -> str | int | None:
        if len(inner) >= 2 and inner[0] == inner[-1] and inner[0] in "'\"":
            return inner[1:-1]
        if inner.lstrip("-").isdigit():
            return int(inner)

        found, value = ObjectPath._try_get(obj, inner)
        if not found:
            return None
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, str)):
            return value
        return None

    @staticmethod
    def _find_key(obj: Mapping, name: str) -> str | None:
        if name in obj:
            return name
        lowered = name.lower()
        for key in obj:
            if isinstance(key, str) and key.lower() == lowered:
                return key
        return None

    @staticmethod
    def _get_segment(obj: Any, segment: str | int) -> tuple[bool, Any]:
        if obj is None:
            return False, None
        if isinstance(segment, int):
            if isinstance(obj, (list, tuple)) and -len(obj) <= segment < len(obj):
                return True, obj[segment]
            return False, None
        if isinstance(obj, Mapping):
            key = ObjectPath._find_key(obj, segment)
            if key is None:
                return False, None
            return True, obj[key]
        if isinstance(obj, (str, int, float, bool, list, tuple)):
            return False, None
        attribute = ObjectPath._find_attribute(obj, segment)
        if attribute is None:
            return False, None
        return True, getattr(obj, attribute)

    @staticmethod
    def _set_segment(obj: Any, segment: str | int, value: Any) -> None:
        if isinstance(segment, int):
            if not isinstance(obj, list):
                raise TypeError(f"Cannot index {type(obj).__name__} with {segment}")
            while len(obj) <= segment:
                obj.append(None)
            obj[segment] = value
        elif isinstance(obj, MutableMapping):
            key = ObjectPath._find_key(obj, segment)
            obj[key if key is not None else segment] = value
        else:
            attribute = ObjectPath._find_attribute(obj, segment)
            setattr(obj, attribute or segment, value)

    @staticmethod
    def _find_attribute(obj: Any, name: str) -> str | None:
        names = ObjectPath.get_properties(obj)
        if name in names:
            return name
        lowered = name.lower()
        for candidate in names:
            if candidate.lower() == lowered:
                return candidate
        return None

    @staticmethod
    def _items(obj: Any) -> list[tuple[str, Any]]:
        if obj is None:
            return []
        if isinstance(obj, Mapping):
            return [(str(k), v) for k, v in obj.items()]
        if isinstance(obj, BaseModel):
            names = list(type(obj).model_fields) + list(obj.model_extra or {})
            return [(name, getattr(obj, name)) for name in names]
        if hasattr(obj, "__dict__"):
            return [(k, v) for k, v in vars(obj).items() if not k.startswith("_")]
        return []
