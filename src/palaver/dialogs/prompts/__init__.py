"""Prompt dialogs."""

from .activity_prompt import ActivityPrompt
from .attachment import AttachmentPrompt
from .choice import ChoicePrompt
from .confirm import ConfirmPrompt
from .culture import PromptCultureModel, PromptCultureModels
from .number import NumberPrompt
from .options import (
    PromptOptions,
    PromptRecognizerResult,
    PromptValidator,
    PromptValidatorContext,
)
from .prompt import Prompt
from .text import TextPrompt

__all__ = [
    # Options
    "PromptOptions",
    "PromptRecognizerResult",
    "PromptValidator",
    "PromptValidatorContext",
    # Cultures
    "PromptCultureModel",
    "PromptCultureModels",
    # Prompts
    "ActivityPrompt",
    "AttachmentPrompt",
    "ChoicePrompt",
    "ConfirmPrompt",
    "NumberPrompt",
    "Prompt",
    "TextPrompt",
]
