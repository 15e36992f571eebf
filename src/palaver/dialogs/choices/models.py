"""Choice, match and option types used by choice prompts."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from palaver.models import CardAction

T = TypeVar("T")


@dataclass
class Choice:
    """A choice presented to the user.

    Attributes:
        value: Value returned when the choice is selected.
        action: Optional card action rendered for the choice.
        synonyms: Extra phrases that select the choice.
    """

    value: str = ""
    action: CardAction | None = None
    synonyms: list[str] | None = None


class ListStyle(str, Enum):
    """How a list of choices is rendered."""

    NONE = "none"
    AUTO = "auto"
    IN_LINE = "inline"
    LIST_STYLE = "list"
    SUGGESTED_ACTION = "suggestedAction"
    HERO_CARD = "heroCard"


@dataclass
class ChoiceFactoryOptions:
    inline_separator: str = ", "
    inline_or: str = " or "
    inline_or_more: str = ", or "
    include_numbers: bool = True


@dataclass
class Token:
    """A token in an utterance; `start` and `end` are inclusive character offsets."""

    start: int = 0
    end: int = 0
    text: str = ""
    normalized: str = ""


TokenizerFunction = Callable[[str, str | None], list[Token]]


@dataclass
class FindValuesOptions:
    allow_partial_matches: bool = False
    locale: str | None = None
    max_token_distance: int = 2
    tokenizer: TokenizerFunction | None = None


@dataclass
class FindChoicesOptions(FindValuesOptions):
    no_value: bool = False
    no_action: bool = False
    recognize_numbers: bool = True
    recognize_ordinals: bool = True


@dataclass
class SortedValue:
    value: str
    index: int


@dataclass
class FoundValue:
    value: str
    index: int
    score: float


@dataclass
class FoundChoice:
    value: str
    index: int
    score: float
    synonym: str | None = None


@dataclass
class ModelResult(Generic[T]):
    """A recognized span: offsets, matched text and its resolution."""

    start: int
    end: int
    type_name: str
    text: str
    resolution: T
    extra: dict = field(default_factory=dict)
