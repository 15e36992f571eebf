"""Dialog stack data types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DialogTurnStatus(str, Enum):
    """Outcome of a dialog turn."""

    EMPTY = "empty"
    WAITING = "waiting"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


class DialogReason(str, Enum):
    """Why a dialog is being resumed or ended."""

    BEGIN_CALLED = "beginCalled"
    CONTINUE_CALLED = "continueCalled"
    END_CALLED = "endCalled"
    REPLACE_CALLED = "replaceCalled"
    CANCEL_CALLED = "cancelCalled"
    NEXT_CALLED = "nextCalled"


@dataclass
class DialogTurnResult:
    status: DialogTurnStatus
    result: Any = None
    parent_ended: bool = False


@dataclass
class DialogInstance:
    """One entry on the dialog stack."""

    id: str | None = None
    state: dict[str, Any] = field(default_factory=dict)
    version: str | None = None


@dataclass
class DialogState:
    """Persisted dialog stack; index 0 is the active dialog."""

    dialog_stack: list[DialogInstance] = field(default_factory=list)


@dataclass
class DialogEvent:
    bubble: bool = False
    name: str = ""
    value: Any = None


class DialogEvents:
    BEGIN_DIALOG = "beginDialog"
    REPROMPT_DIALOG = "repromptDialog"
    CANCEL_DIALOG = "cancelDialog"
    ACTIVITY_RECEIVED = "activityReceived"
    VERSION_CHANGED = "versionChanged"
    ERROR = "error"


class DialogTurnStateConstants:
    """Keys for services stored in turn state by the dialog system."""

    CONFIGURATION = "palaver.configuration"
    DIALOG_MANAGER = "palaver.dialog_manager"
    DIALOG_STATE_MANAGER = "palaver.dialog_state_manager"
    TELEMETRY_CLIENT = "palaver.telemetry_client"
    QUEUE_STORAGE = "palaver.queue_storage"
    ACTIVITY_RECEIVED_EMITTED = "palaver.activity_received_emitted"


class TurnPath:
    """Well-known paths in the turn memory scope."""

    ACTIVITY = "turn.activity"
    ACTIVITY_PROCESSED = "turn.activityProcessed"
    DIALOG_EVENT = "turn.dialogEvent"
    INTERRUPTED = "turn.interrupted"
    LAST_RESULT = "turn.lastResult"
    RECOGNIZED = "turn.recognized"
    REPEATED_IDS = "turn.__repeatedIds"
    TOP_INTENT = "turn.recognized.intent"
    TOP_SCORE = "turn.recognized.score"
    UNRECOGNIZED_TEXT = "turn.unrecognizedText"


class DialogNotFoundError(KeyError):
    """Raised when a dialog id is not registered in any reachable DialogSet."""

    status_code = 404
    retryable = False

    def __init__(self, dialog_id: str, message: str | None = None):
        self.dialog_id = dialog_id
        self.message = message or (
            f"A dialog with an id of '{dialog_id}' wasn't found. The dialog must be "
            "included in the current or parent DialogSet. For example, if subclassing "
            "a ComponentDialog you can call add_dialog() within your constructor."
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
