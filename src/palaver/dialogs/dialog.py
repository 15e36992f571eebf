"""Base class for all dialogs and the turn entry point that drives them."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from palaver.core.adapter import BotAdapter
from palaver.core.state import StatePropertyAccessor
from palaver.core.telemetry import BotTelemetryClient, NullTelemetryClient
from palaver.core.turn_context import TurnContext
from palaver.infrastructure.metrics import record_telemetry_event
from palaver.models import Activity, ActivityTypes, EndOfConversationCodes

from .models import (
    DialogEvent,
    DialogEvents,
    DialogInstance,
    DialogReason,
    DialogTurnResult,
    DialogTurnStateConstants,
    DialogTurnStatus,
)

if TYPE_CHECKING:
    from .dialog_context import DialogContext

logger = logging.getLogger(__name__)


class Dialog(ABC):
    """A unit of conversation that can be pushed on a dialog stack."""

    END_OF_TURN = DialogTurnResult(DialogTurnStatus.WAITING)

    def __init__(self, dialog_id: str | None = None):
        self._id = dialog_id
        self._telemetry_client: BotTelemetryClient = NullTelemetryClient()

    @property
    def id(self) -> str:
        if not self._id:
            self._id = self.on_compute_id()
        return self._id

    @id.setter
    def id(self, value: str) -> None:
        self._id = value

    @property
    def telemetry_client(self) -> BotTelemetryClient:
        return self._telemetry_client

    @telemetry_client.setter
    def telemetry_client(self, value: BotTelemetryClient | None) -> None:
        self._telemetry_client = value if value is not None else NullTelemetryClient()

    def get_version(self) -> str:
        """Changes in the version of a dialog on the stack raise a versionChanged event."""
        return self.id

    @abstractmethod
    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        """Called when the dialog is started and pushed onto the stack.

        Args:
            dialog_context: The dialog context for the current turn.
            options: Arguments passed by the caller.

        Returns:
            Whether the dialog is still active after this turn.
        """
        pass

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        """Called when the dialog is the active dialog and the user replied.

        Single-turn dialogs end here by default.
        """
        return await dialog_context.end_dialog(None)

    async def resume_dialog(
        self, dialog_context: DialogContext, reason: DialogReason, result: object = None
    ) -> DialogTurnResult:
        """Called when a child dialog this dialog started has completed."""
        return await dialog_context.end_dialog(result)

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        """Re-send the question the dialog is waiting on."""
        return

    async def end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        """Clean up when the dialog is being removed from the stack."""
        return

    async def on_dialog_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        """Handle an event emitted on the dialog stack.

        Returns:
            True if the event was handled and should stop propagating.
        """
        handled = await self.on_pre_bubble_event(dialog_context, dialog_event)

        if not handled and dialog_event.bubble and dialog_context.parent is not None:
            handled = await dialog_context.parent.emit_event(
                dialog_event.name, dialog_event.value, True, False
            )

        if not handled:
            handled = await self.on_post_bubble_event(dialog_context, dialog_event)

        return handled

    async def on_pre_bubble_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        return False

    async def on_post_bubble_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        return False

    def on_compute_id(self) -> str:
        return type(self).__name__

    def track_event(self, name: str, properties: dict[str, Any] | None = None) -> None:
        self.telemetry_client.track_event(name, properties)
        record_telemetry_event(name)

    @staticmethod
    async def run(
        dialog: "Dialog",
        turn_context: TurnContext,
        accessor: StatePropertyAccessor,
    ) -> DialogTurnResult:
        """Run a dialog for one turn.

        Continues the active dialog on the stack or begins `dialog` when the
        stack is empty, then saves memory scope changes.

        Args:
            dialog: The root dialog.
            turn_context: The context for the current turn.
            accessor: Property accessor holding the DialogState.

        Returns:
            The turn result from the dialog stack.
        """
        from .dialog_set import DialogSet

        dialog_set = DialogSet(accessor)
        dialog_set.telemetry_client = (
            turn_context.turn_state.get(DialogTurnStateConstants.TELEMETRY_CLIENT)
            or dialog.telemetry_client
        )
        dialog_set.add(dialog)

        dialog_context = await dialog_set.create_context(turn_context)
        return await _inner_run(turn_context, dialog.id, dialog_context)


async def run_dialog(
    dialog: Dialog, turn_context: TurnContext, accessor: StatePropertyAccessor
) -> DialogTurnResult:
    """Run a dialog for one turn; see `Dialog.run`."""
    return await Dialog.run(dialog, turn_context, accessor)


async def _inner_run(turn_context: TurnContext, dialog_id: str, dialog_context: DialogContext) -> DialogTurnResult:
    for key, service in turn_context.turn_state.items():
        dialog_context.services.setdefault(key, service)

    state_manager = dialog_context.state
    await state_manager.load_all_scopes()
    dialog_context.context.turn_state[DialogTurnStateConstants.DIALOG_STATE_MANAGER] = state_manager
    dialog_context.services[DialogTurnStateConstants.DIALOG_STATE_MANAGER] = state_manager

    try:
        result = await _continue_or_start(dialog_context, dialog_id)
    except Exception as err:
        logger.debug("Dialog turn raised %s, emitting error event", type(err).__name__)
        handled = await dialog_context.emit_event(DialogEvents.ERROR, err, bubble=True, from_leaf=True)
        if not handled:
            raise
        if dialog_context.active_dialog is not None:
            result = Dialog.END_OF_TURN
        else:
            result = DialogTurnResult(DialogTurnStatus.EMPTY)

    await state_manager.save_all_changes()
    return result


async def _continue_or_start(dialog_context: DialogContext, dialog_id: str) -> DialogTurnResult:
    turn_context = dialog_context.context
    activity = turn_context.activity

    if _is_skill_turn(turn_context):
        if activity.type == ActivityTypes.END_OF_CONVERSATION:
            logger.debug("Parent bot ended the conversation, cancelling all dialogs")
            return await dialog_context.cancel_all_dialogs(True)

        if activity.type == ActivityTypes.EVENT and activity.name == DialogEvents.REPROMPT_DIALOG:
            if dialog_context.active_dialog is None:
                return DialogTurnResult(DialogTurnStatus.EMPTY)
            await dialog_context.reprompt_dialog()
            return Dialog.END_OF_TURN

    result = await dialog_context.continue_dialog()
    if result.status == DialogTurnStatus.EMPTY:
        result = await dialog_context.begin_dialog(dialog_id, None)

    await _process_end_of_conversation(dialog_context, result)
    return result


async def _process_end_of_conversation(dialog_context: DialogContext, result: DialogTurnResult) -> None:
    turn_context = dialog_context.context
    is_skill = _is_skill_turn(turn_context)

    await _send_state_snapshot_trace(dialog_context, "Skill State" if is_skill else "Bot State")

    if not is_skill or result.status not in (DialogTurnStatus.COMPLETE, DialogTurnStatus.CANCELLED):
        return

    code = (
        EndOfConversationCodes.COMPLETED_SUCCESSFULLY
        if result.status == DialogTurnStatus.COMPLETE
        else EndOfConversationCodes.USER_CANCELLED
    )
    activity = Activity(
        type=ActivityTypes.END_OF_CONVERSATION,
        value=result.result,
        locale=turn_context.activity.locale,
        code=code,
    )
    await turn_context.send_activity(activity)


async def _send_state_snapshot_trace(dialog_context: DialogContext, trace_label: str) -> None:
    state_manager = dialog_context.state
    snapshot = state_manager.get_memory_snapshot() if state_manager is not None else {}
    await dialog_context.context.send_trace_activity(
        "BotState",
        snapshot,
        "https://www.botframework.com/schemas/botState",
        trace_label,
    )


def _claims_identity(turn_context: TurnContext):
    return turn_context.turn_state.get(BotAdapter.BOT_IDENTITY_KEY)


def _is_skill_turn(turn_context: TurnContext) -> bool:
    from palaver.connector.auth import SkillValidation

    identity = _claims_identity(turn_context)
    return identity is not None and SkillValidation.is_skill_claim(identity.claims)
