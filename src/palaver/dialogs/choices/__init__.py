"""Choice rendering and recognition."""

from .channel import Channel, Channels
from .factory import ChoiceFactory
from .find import Find
from .models import (
    Choice,
    ChoiceFactoryOptions,
    FindChoicesOptions,
    FindValuesOptions,
    FoundChoice,
    FoundValue,
    ListStyle,
    ModelResult,
    SortedValue,
    Token,
)
from .recognizers import ChoiceRecognizers
from .text_recognizers import recognize_boolean, recognize_number, recognize_ordinal
from .tokenizer import Tokenizer

__all__ = [
    # Models
    "Choice",
    "ChoiceFactoryOptions",
    "FindChoicesOptions",
    "FindValuesOptions",
    "FoundChoice",
    "FoundValue",
    "ListStyle",
    "ModelResult",
    "SortedValue",
    "Token",
    # Rendering
    "Channel",
    "Channels",
    "ChoiceFactory",
    # Recognition
    "ChoiceRecognizers",
    "Find",
    "Tokenizer",
    "recognize_boolean",
    "recognize_number",
    "recognize_ordinal",
]
