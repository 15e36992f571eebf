"""Dialog stack, waterfalls, prompts and dialog memory."""

from .component_dialog import ComponentDialog
from .dialog import Dialog, run_dialog
from .dialog_container import DialogContainer
from .dialog_context import DialogContext
from .dialog_set import DialogSet
from .models import (
    DialogEvent,
    DialogEvents,
    DialogInstance,
    DialogNotFoundError,
    DialogReason,
    DialogState,
    DialogTurnResult,
    DialogTurnStateConstants,
    DialogTurnStatus,
    TurnPath,
)
from .object_path import ObjectPath
from .waterfall import WaterfallDialog, WaterfallStep, WaterfallStepContext
from .memory import DialogStateManager, DialogStateManagerConfiguration
from .prompts import (
    ActivityPrompt,
    AttachmentPrompt,
    ChoicePrompt,
    ConfirmPrompt,
    NumberPrompt,
    Prompt,
    PromptCultureModels,
    PromptOptions,
    PromptRecognizerResult,
    PromptValidatorContext,
    TextPrompt,
)

__all__ = [
    # Models
    "DialogEvent",
    "DialogEvents",
    "DialogInstance",
    "DialogNotFoundError",
    "DialogReason",
    "DialogState",
    "DialogTurnResult",
    "DialogTurnStateConstants",
    "DialogTurnStatus",
    "TurnPath",
    # Dialogs
    "ComponentDialog",
    "Dialog",
    "DialogContainer",
    "DialogContext",
    "DialogSet",
    "WaterfallDialog",
    "WaterfallStep",
    "WaterfallStepContext",
    "run_dialog",
    # Memory
    "DialogStateManager",
    "DialogStateManagerConfiguration",
    "ObjectPath",
    # Prompts
    "ActivityPrompt",
    "AttachmentPrompt",
    "ChoicePrompt",
    "ConfirmPrompt",
    "NumberPrompt",
    "Prompt",
    "PromptCultureModels",
    "PromptOptions",
    "PromptRecognizerResult",
    "PromptValidatorContext",
    "TextPrompt",
]
