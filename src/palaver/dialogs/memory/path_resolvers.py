"""Shorthand prefixes expanded into full memory paths."""

from abc import ABC, abstractmethod


class PathResolver(ABC):
    @abstractmethod
    def transform_path(self, path: str) -> str:
        pass


class AliasPathResolver(PathResolver):
    """Replaces a leading alias with a prefix, e.g. ``$name`` → ``dialog.name``."""

    def __init__(self, alias: str, prefix: str, postfix: str | None = None):
        if not alias:
            raise ValueError("alias cannot be empty.")
        if prefix is None:
            raise TypeError("prefix cannot be None.")
        self.alias = alias.strip()
        self.prefix = prefix.strip()
        self.postfix = postfix.strip() if postfix else ""

    def transform_path(self, path: str) -> str:
        if not path:
            raise ValueError("path cannot be empty.")
        start = path.strip()
        if start.startswith(self.alias):
            return f"{self.prefix}{start[len(self.alias):]}{self.postfix}"
        return path


class DollarPathResolver(AliasPathResolver):
    def __init__(self):
        super().__init__("$", "dialog.")


class HashPathResolver(AliasPathResolver):
    def __init__(self):
        super().__init__("#", "turn.recognized.intents.")


class AtAtPathResolver(AliasPathResolver):
    def __init__(self):
        super().__init__("@@", "turn.recognized.entities.")


class AtPathResolver(AliasPathResolver):
    """``@city.name`` → ``turn.recognized.entities.city.first().name``."""

    _DELIMITERS = (".", "[")

    def __init__(self):
        super().__init__("@", "")
        self._entity_prefix = "turn.recognized.entities."

    def transform_path(self, path: str) -> str:
        if not path:
            raise ValueError("path cannot be empty.")
        path = path.strip()
        if path.startswith("@") and len(path) > 1 and path[1] != "@" and _is_path_char(path[1]):
            end = min((i for i in (path.find(d) for d in self._DELIMITERS) if i >= 0), default=len(path))
            prop = path[1:end]
            suffix = path[end:]
            return f"{self._entity_prefix}{prop}.first(){suffix}"
        return path


class PercentPathResolver(AliasPathResolver):
    def __init__(self):
        super().__init__("%", "class.")


def _is_path_char(char: str) -> bool:
    return char.isalnum() or char == "_"
