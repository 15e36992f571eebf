"""A named collection of dialogs."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from palaver.core.state import StatePropertyAccessor
from palaver.core.telemetry import BotTelemetryClient, NullTelemetryClient
from palaver.core.turn_context import TurnContext

from .dialog import Dialog
from .models import DialogState

if TYPE_CHECKING:
    from .dialog_context import DialogContext

logger = logging.getLogger(__name__)


class DialogSet:
    """Dialogs that can call each other, plus the accessor their stack is stored under."""

    def __init__(self, dialog_state: StatePropertyAccessor | None = None):
        self._dialog_state = dialog_state
        self._dialogs: dict[str, Dialog] = {}
        self._telemetry_client: BotTelemetryClient = NullTelemetryClient()
        self._version: str | None = None

    @property
    def telemetry_client(self) -> BotTelemetryClient:
        return self._telemetry_client

    @telemetry_client.setter
    def telemetry_client(self, value: BotTelemetryClient | None) -> None:
        self._telemetry_client = value if value is not None else NullTelemetryClient()
        for dialog in self._dialogs.values():
            dialog.telemetry_client = self._telemetry_client

    @property
    def dialogs(self) -> list[Dialog]:
        return list(self._dialogs.values())

    def get_version(self) -> str:
        """Hash of the versions of every dialog in the set."""
        if self._version is None:
            versions = "".join(d.get_version() or "" for d in self._dialogs.values())
            self._version = hashlib.sha256(versions.encode("utf-8")).hexdigest()
        return self._version

    def add(self, dialog: Dialog) -> "DialogSet":
        """Add a dialog, renaming it with a numeric suffix if its id is taken.

        Dependencies returned by `dialog.get_dependencies()` are added too.
        """
        if dialog is None or not isinstance(dialog, Dialog):
            raise TypeError("DialogSet.add(): dialog cannot be None and must be a Dialog.")

        self._version = None

        if dialog.id in self._dialogs:
            if self._dialogs[dialog.id] is dialog:
                return self
            suffix = 2
            while f"{dialog.id}{suffix}" in self._dialogs:
                suffix += 1
            logger.debug("Dialog id %s already registered, renaming to %s%d", dialog.id, dialog.id, suffix)
            dialog.id = f"{dialog.id}{suffix}"

        dialog.telemetry_client = self._telemetry_client
        self._dialogs[dialog.id] = dialog

        get_dependencies = getattr(dialog, "get_dependencies", None)
        if callable(get_dependencies):
            for dependency in get_dependencies() or []:
                self.add(dependency)

        return self

    async def create_context(self, turn_context: TurnContext) -> "DialogContext":
        """Load the dialog stack and wrap it in a DialogContext for this turn."""
        from .dialog_context import DialogContext

        if turn_context is None:
            raise TypeError("DialogSet.create_context(): turn_context cannot be None.")
        if self._dialog_state is None:
            raise TypeError(
                "DialogSet.create_context(): DialogSet created with a None StatePropertyAccessor."
            )

        state = await self._dialog_state.get(turn_context, DialogState)
        return DialogContext(self, turn_context, state)

    def find(self, dialog_id: str) -> Dialog | None:
        if not dialog_id:
            raise ValueError("DialogSet.find(): dialog_id cannot be empty.")
        return self._dialogs.get(dialog_id)

    def __contains__(self, dialog_id: str) -> bool:
        return dialog_id in self._dialogs

    def __str__(self) -> str:
        return f"DialogSet({', '.join(self._dialogs)})"
