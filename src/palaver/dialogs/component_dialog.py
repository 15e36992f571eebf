"""A dialog composed of other dialogs."""

from __future__ import annotations

import logging

from palaver.core.turn_context import TurnContext

from .dialog import Dialog
from .dialog_container import DialogContainer
from .dialog_context import DialogContext
from .models import DialogInstance, DialogReason, DialogState, DialogTurnResult, DialogTurnStatus

logger = logging.getLogger(__name__)


class ComponentDialog(DialogContainer):
    """Runs an inner dialog stack, stored in the component's own instance state.

    The first dialog added is started when the component begins, unless
    `initial_dialog_id` is set. The component ends when its inner stack
    completes.
    """

    PERSISTED_DIALOG_STATE = "dialogs"

    def __init__(self, dialog_id: str | None = None):
        super().__init__(dialog_id)
        self.initial_dialog_id: str | None = None
        self._initialized = False

    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("ComponentDialog.begin_dialog(): outer dialog context cannot be None.")

        await self._ensure_initialized(dialog_context)
        await self.check_for_version_change(dialog_context)

        inner_dc = self.create_child_context(dialog_context)
        turn_result = await self.on_begin_dialog(inner_dc, options)

        if turn_result.status != DialogTurnStatus.WAITING:
            return await self.end_component(dialog_context, turn_result.result)

        self.track_event("DialogView", {"DialogId": self.id})
        return Dialog.END_OF_TURN

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        await self._ensure_initialized(dialog_context)
        await self.check_for_version_change(dialog_context)

        inner_dc = self.create_child_context(dialog_context)
        turn_result = await self.on_continue_dialog(inner_dc)

        if turn_result.status != DialogTurnStatus.WAITING:
            return await self.end_component(dialog_context, turn_result.result)

        return Dialog.END_OF_TURN

    async def resume_dialog(
        self, dialog_context: DialogContext, reason: DialogReason, result: object = None
    ) -> DialogTurnResult:
        # Inner dialogs are never resumed from outside; re-ask the current question instead.
        await self._ensure_initialized(dialog_context)
        await self.check_for_version_change(dialog_context)
        await self.reprompt_dialog(dialog_context.context, dialog_context.active_dialog)
        return Dialog.END_OF_TURN

    async def reprompt_dialog(self, context: TurnContext, instance: DialogInstance) -> None:
        inner_dc = self._create_inner_dc(context, instance)
        await inner_dc.reprompt_dialog()
        await self.on_reprompt_dialog(context, instance)

    async def end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        if reason == DialogReason.CANCEL_CALLED:
            inner_dc = self._create_inner_dc(context, instance)
            await inner_dc.cancel_all_dialogs()
        await self.on_end_dialog(context, instance, reason)

    def add_dialog(self, dialog: Dialog) -> "ComponentDialog":
        """Add an inner dialog; the first one added becomes the initial dialog."""
        self.dialogs.add(dialog)
        if not self.initial_dialog_id:
            self.initial_dialog_id = dialog.id
        return self

    def create_child_context(self, dialog_context: DialogContext) -> DialogContext:
        return self._create_inner_dc(dialog_context, dialog_context.active_dialog)

    async def on_initialize(self, dialog_context: DialogContext) -> None:
        if self.initial_dialog_id is None:
            dialogs = self.dialogs.dialogs
            if dialogs:
                self.initial_dialog_id = dialogs[0].id

    async def on_begin_dialog(self, inner_dc: DialogContext, options: object) -> DialogTurnResult:
        return await inner_dc.begin_dialog(self.initial_dialog_id, options)

    async def on_continue_dialog(self, inner_dc: DialogContext) -> DialogTurnResult:
        return await inner_dc.continue_dialog()

    async def on_end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        return

    async def on_reprompt_dialog(self, turn_context: TurnContext, instance: DialogInstance) -> None:
        return

    async def end_component(self, outer_dc: DialogContext, result: object) -> DialogTurnResult:
        return await outer_dc.end_dialog(result)

    async def _ensure_initialized(self, outer_dc: DialogContext) -> None:
        if not self._initialized:
            self._initialized = True
            await self.on_initialize(outer_dc)

    def _create_inner_dc(self, context: TurnContext | DialogContext, instance: DialogInstance) -> DialogContext:
        state = instance.state.get(self.PERSISTED_DIALOG_STATE)
        if state is None:
            state = DialogState()
            instance.state[self.PERSISTED_DIALOG_STATE] = state
        return DialogContext(self.dialogs, context, state)
