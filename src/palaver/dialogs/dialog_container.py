"""Dialogs that own an inner set of dialogs."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

from palaver.core.telemetry import BotTelemetryClient, Severity

from .dialog import Dialog
from .dialog_set import DialogSet
from .models import DialogEvent, DialogEvents

if TYPE_CHECKING:
    from .dialog_context import DialogContext


class DialogContainer(Dialog):
    """A dialog with a child DialogSet and its own inner stack."""

    def __init__(self, dialog_id: str | None = None):
        super().__init__(dialog_id)
        self.dialogs = DialogSet()

    @Dialog.telemetry_client.setter
    def telemetry_client(self, value: BotTelemetryClient | None) -> None:
        Dialog.telemetry_client.fset(self, value)
        self.dialogs.telemetry_client = self._telemetry_client

    @abstractmethod
    def create_child_context(self, dialog_context: DialogContext) -> DialogContext | None:
        """Context for the inner stack of this container's active instance."""
        pass

    def find_dialog(self, dialog_id: str) -> Dialog | None:
        return self.dialogs.find(dialog_id)

    async def on_dialog_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        handled = await super().on_dialog_event(dialog_context, dialog_event)

        if not handled and dialog_event.name == DialogEvents.VERSION_CHANGED:
            trace_message = (
                f"Unhandled dialog event: {dialog_event.name}. "
                f"Active Dialog: {dialog_context.active_dialog.id}"
            )
            dialog_context.dialogs.telemetry_client.track_trace(trace_message, Severity.WARNING)
            await dialog_context.context.send_trace_activity(trace_message)

        return handled

    def get_version(self) -> str:
        return self.get_internal_version()

    def get_internal_version(self) -> str:
        return self.dialogs.get_version()

    async def check_for_version_change(self, dialog_context: DialogContext) -> None:
        """Emit versionChanged when the inner dialogs changed since the instance started."""
        active = dialog_context.active_dialog
        current = active.version
        active.version = self.get_internal_version()

        if current is not None and current != active.version:
            await dialog_context.emit_event(
                DialogEvents.VERSION_CHANGED, self.id, bubble=True, from_leaf=False
            )
