"""Prompt options, recognition results and validator context."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from palaver.core.turn_context import TurnContext
from palaver.dialogs.choices import Choice, ListStyle
from palaver.models import Activity

T = TypeVar("T")

ATTEMPT_COUNT_KEY = "AttemptCount"


@dataclass
class PromptOptions:
    """What a prompt sends and the choices it offers.

    Attributes:
        prompt: Initial question.
        retry_prompt: Sent instead of `prompt` after invalid input.
        choices: Choices for choice and confirm prompts.
        style: How choices are rendered, overriding the prompt's default.
        validations: Extra data made available to custom validators.
        number_of_attempts: Attempts made so far, for validators that track it.
    """

    prompt: Activity | None = None
    retry_prompt: Activity | None = None
    choices: list[Choice] | None = None
    style: ListStyle | None = None
    validations: Any = None
    number_of_attempts: int = 0


@dataclass
class PromptRecognizerResult(Generic[T]):
    succeeded: bool = False
    value: T | None = None
    allow_interruption: bool = False


@dataclass
class PromptValidatorContext(Generic[T]):
    context: TurnContext
    recognized: PromptRecognizerResult[T]
    state: dict[str, Any] = field(default_factory=dict)
    options: PromptOptions | None = None

    @property
    def attempt_count(self) -> int:
        """Number of times the prompt has been answered, including this one."""
        return self.state.get(ATTEMPT_COUNT_KEY, 0)


PromptValidator = Callable[[PromptValidatorContext], Awaitable[bool]]
