"""The dialog stack for one turn, and the operations that push and pop it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from palaver.core.turn_context import TurnContext

from .dialog import Dialog
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

if TYPE_CHECKING:
    from .dialog_set import DialogSet
    from .memory import DialogStateManager
    from .prompts import PromptOptions

logger = logging.getLogger(__name__)


class DialogContext:
    """Runs dialogs from a DialogSet against a stack stored in DialogState.

    The top of the stack, the active dialog, is at index 0.
    """

    def __init__(
        self,
        dialog_set: DialogSet,
        turn_context: TurnContext | DialogContext,
        state: DialogState,
    ):
        if dialog_set is None:
            raise TypeError("DialogContext(): dialog_set cannot be None.")
        if turn_context is None:
            raise TypeError("DialogContext(): turn_context cannot be None.")
        if state is None:
            raise TypeError("DialogContext(): state cannot be None.")

        parent: DialogContext | None = None
        if isinstance(turn_context, DialogContext):
            parent = turn_context
            turn_context = parent.context

        self._dialogs = dialog_set
        self._turn_context: TurnContext = turn_context
        self._stack = state.dialog_stack
        self.parent: DialogContext | None = parent
        self.services: dict[Any, Any] = dict(parent.services) if parent is not None else {}

        from .memory import DialogStateManager

        self.state: DialogStateManager = DialogStateManager(self)

    @property
    def dialogs(self) -> DialogSet:
        return self._dialogs

    @property
    def context(self) -> TurnContext:
        return self._turn_context

    @property
    def stack(self) -> list[DialogInstance]:
        return self._stack

    @property
    def active_dialog(self) -> DialogInstance | None:
        return self._stack[0] if self._stack else None

    @property
    def child(self) -> DialogContext | None:
        """Context of the active dialog's inner stack, when it is a container."""
        from .dialog_container import DialogContainer

        instance = self.active_dialog
        if instance is None:
            return None
        dialog = self.find_dialog(instance.id)
        if isinstance(dialog, DialogContainer):
            return dialog.create_child_context(self)
        return None

    async def begin_dialog(self, dialog_id: str, options: object = None) -> DialogTurnResult:
        """Push a new dialog onto the stack and start it.

        Args:
            dialog_id: Id of the dialog to start.
            options: Arguments passed to the dialog's begin_dialog.

        Raises:
            ValueError: If `dialog_id` is empty.
            DialogNotFoundError: If no reachable DialogSet has the dialog.
        """
        if not dialog_id:
            raise ValueError("DialogContext.begin_dialog(): dialog_id cannot be None.")

        dialog = self.find_dialog(dialog_id)
        if dialog is None:
            raise DialogNotFoundError(dialog_id)

        instance = DialogInstance(id=dialog_id, state={}, version=dialog.get_version())
        self._stack.insert(0, instance)

        logger.debug("Beginning dialog %s", dialog_id)
        return await dialog.begin_dialog(self, options)

    async def prompt(self, dialog_id: str, options: PromptOptions) -> DialogTurnResult:
        """Start a prompt dialog."""
        if not dialog_id:
            raise TypeError("DialogContext.prompt(): dialog_id cannot be None.")
        if options is None:
            raise TypeError("DialogContext.prompt(): options cannot be None.")
        return await self.begin_dialog(dialog_id, options)

    async def continue_dialog(self) -> DialogTurnResult:
        """Continue the active dialog, if any.

        Returns:
            The active dialog's result, or EMPTY when the stack is empty.
        """
        turn_state = self.context.turn_state
        if not turn_state.get(DialogTurnStateConstants.ACTIVITY_RECEIVED_EMITTED):
            turn_state[DialogTurnStateConstants.ACTIVITY_RECEIVED_EMITTED] = True
            await self.emit_event(
                DialogEvents.ACTIVITY_RECEIVED, self.context.activity, bubble=True, from_leaf=True
            )

        instance = self.active_dialog
        if instance is None:
            return DialogTurnResult(DialogTurnStatus.EMPTY)

        dialog = self.find_dialog(instance.id)
        if dialog is None:
            raise DialogNotFoundError(
                instance.id,
                f"Failed to continue dialog. A dialog with id {instance.id} could not be found.",
            )
        return await dialog.continue_dialog(self)

    async def end_dialog(self, result: object = None) -> DialogTurnResult:
        """End the active dialog and resume its parent with `result`.

        Returns:
            The parent's result, or COMPLETE with `result` when the stack empties.
        """
        await self._end_active_dialog(DialogReason.END_CALLED, result)

        instance = self.active_dialog
        if instance is None:
            return DialogTurnResult(DialogTurnStatus.COMPLETE, result)

        dialog = self.find_dialog(instance.id)
        if dialog is None:
            raise DialogNotFoundError(
                instance.id,
                f"DialogContext.end_dialog(): Can't resume previous dialog. "
                f"A dialog with an id of '{instance.id}' wasn't found.",
            )
        return await dialog.resume_dialog(self, DialogReason.END_CALLED, result)

    async def cancel_all_dialogs(
        self,
        cancel_parents: bool = False,
        event_name: str | None = None,
        event_value: object = None,
    ) -> DialogTurnResult:
        """Cancel every dialog on the stack.

        The cancel event is emitted before each dialog after the first is
        ended; a dialog that handles it stops the cancellation.

        Args:
            cancel_parents: Also cancel dialogs in parent contexts.
            event_name: Event to emit, `cancelDialog` by default.
            event_value: Value carried by the event.

        Returns:
            CANCELLED, or EMPTY when nothing was active.
        """
        event_name = event_name or DialogEvents.CANCEL_DIALOG
        if not self._stack and self.parent is None:
            return DialogTurnResult(DialogTurnStatus.EMPTY)

        notify = False
        dialog_context: DialogContext | None = self
        while dialog_context is not None:
            if dialog_context.stack:
                if notify:
                    handled = await dialog_context.emit_event(
                        event_name, event_value, bubble=False, from_leaf=False
                    )
                    if handled:
                        break
                await dialog_context._end_active_dialog(DialogReason.CANCEL_CALLED)
            else:
                dialog_context = dialog_context.parent if cancel_parents else None
            notify = True

        return DialogTurnResult(DialogTurnStatus.CANCELLED)

    async def replace_dialog(self, dialog_id: str, options: object = None) -> DialogTurnResult:
        """End the active dialog and start `dialog_id` in its place."""
        instance = self.active_dialog
        if instance is not None and instance.id == dialog_id:
            repeated = self.state.get_value(TurnPath.REPEATED_IDS, []) if self.state else []
            if dialog_id not in repeated:
                repeated = [*repeated, dialog_id]
                self.state.set_value(TurnPath.REPEATED_IDS, repeated)

        await self._end_active_dialog(DialogReason.REPLACE_CALLED)
        return await self.begin_dialog(dialog_id, options)

    async def reprompt_dialog(self) -> None:
        """Ask the active dialog to re-send its question."""
        instance = self.active_dialog
        if instance is None:
            return

        handled = await self.emit_event(DialogEvents.REPROMPT_DIALOG, bubble=False, from_leaf=False)
        if handled:
            return

        dialog = self.find_dialog(instance.id)
        if dialog is None:
            raise DialogNotFoundError(
                instance.id,
                f"DialogContext.reprompt_dialog(): Can't find a dialog with an id of '{instance.id}'.",
            )
        await dialog.reprompt_dialog(self.context, instance)

    def find_dialog(self, dialog_id: str) -> Dialog | None:
        """Look up a dialog in this context's set, then in parent contexts."""
        dialog = self._dialogs.find(dialog_id)
        if dialog is None and self.parent is not None:
            dialog = self.parent.find_dialog(dialog_id)
        return dialog

    async def emit_event(
        self,
        name: str,
        value: object = None,
        bubble: bool = True,
        from_leaf: bool = False,
    ) -> bool:
        """Raise a named event on the active dialog.

        Args:
            name: Event name.
            value: Event payload.
            bubble: Let unhandled events propagate to parent contexts.
            from_leaf: Start from the innermost active dialog.

        Returns:
            True if a dialog handled the event.
        """
        dialog_event = DialogEvent(bubble=bubble, name=name, value=value)
        dialog_context: DialogContext = self

        if from_leaf:
            while True:
                child = dialog_context.child
                if child is None:
                    break
                dialog_context = child

        instance = dialog_context.active_dialog
        if instance is None:
            return False

        dialog = dialog_context.find_dialog(instance.id)
        if dialog is None:
            return False
        return await dialog.on_dialog_event(dialog_context, dialog_event)

    def get_locale(self) -> str:
        """Turn locale, then activity locale, then the configured default."""
        locale = self.context.locale or self.context.activity.locale
        if locale:
            return locale

        from palaver.models.config import get_settings

        return get_settings().default_locale

    async def _end_active_dialog(self, reason: DialogReason, result: object = None) -> None:
        instance = self.active_dialog
        if instance is None:
            return

        dialog = self.find_dialog(instance.id)
        if dialog is not None:
            await dialog.end_dialog(self.context, instance, reason)

        self._stack.pop(0)
        logger.debug("Ended dialog %s (%s)", instance.id, reason.value)
        self.state.set_value(TurnPath.LAST_RESULT, result)
