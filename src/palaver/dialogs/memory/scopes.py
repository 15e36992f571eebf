"""Memory scopes: the named roots of a dialog memory path."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from palaver.core.state import BotState, ConversationState, UserState
from palaver.models.config import get_settings

if TYPE_CHECKING:
    from palaver.dialogs.dialog_context import DialogContext


class ScopePath:
    TURN = "turn"
    SETTINGS = "settings"
    DIALOG = "dialog"
    THIS = "this"
    CLASS = "class"
    CONVERSATION = "conversation"
    USER = "user"
    DIALOG_CONTEXT = "dialogcontext"
    DIALOG_CLASS = "dialogclass"


class MemoryScope(ABC):
    """A named root of memory, resolved against the current dialog context."""

    def __init__(self, name: str, include_in_snapshot: bool = True):
        self.name = name
        self.include_in_snapshot = include_in_snapshot

    @abstractmethod
    def get_memory(self, dialog_context: DialogContext) -> Any:
        pass

    @abstractmethod
    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        pass

    async def load(self, dialog_context: DialogContext, force: bool = False) -> None:
        return

    async def save_changes(self, dialog_context: DialogContext, force: bool = False) -> None:
        return

    async def delete(self, dialog_context: DialogContext) -> None:
        return

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _require_context(dialog_context: DialogContext) -> None:
    if dialog_context is None:
        raise TypeError("dialog_context cannot be None.")


class TurnMemoryScope(MemoryScope):
    """Scratch memory that lives for the current turn only."""

    TURN_STATE_KEY = "turn"

    def __init__(self):
        super().__init__(ScopePath.TURN, include_in_snapshot=False)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any]:
        _require_context(dialog_context)
        return dialog_context.context.turn_state.setdefault(self.TURN_STATE_KEY, {})

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        _require_context(dialog_context)
        if memory is None:
            raise TypeError("memory cannot be None.")
        dialog_context.context.turn_state[self.TURN_STATE_KEY] = memory


class SettingsMemoryScope(MemoryScope):
    """Read-only view of application settings, secrets masked."""

    def __init__(self):
        super().__init__(ScopePath.SETTINGS, include_in_snapshot=False)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any]:
        _require_context(dialog_context)
        return get_settings().public_dict()

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        raise NotImplementedError("You cannot set the memory for a read-only memory scope.")


def _container_instance(dialog_context: DialogContext):
    from palaver.dialogs.dialog_container import DialogContainer

    active = dialog_context.active_dialog
    if active is not None and isinstance(dialog_context.find_dialog(active.id), DialogContainer):
        return active
    if dialog_context.parent is not None:
        return dialog_context.parent.active_dialog
    return active


class DialogMemoryScope(MemoryScope):
    """State of the containing dialog: the active container, else the parent's active dialog."""

    def __init__(self):
        super().__init__(ScopePath.DIALOG)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any] | None:
        _require_context(dialog_context)
        instance = _container_instance(dialog_context)
        return instance.state if instance is not None else None

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        _require_context(dialog_context)
        if not isinstance(memory, dict):
            raise TypeError("memory must be a dict.")
        instance = _container_instance(dialog_context)
        if instance is None:
            raise RuntimeError(
                "Cannot set DialogMemoryScope. There is no active dialog or parent dialog in the context."
            )
        instance.state = memory


class ThisMemoryScope(MemoryScope):
    """State of the active dialog."""

    def __init__(self):
        super().__init__(ScopePath.THIS)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any] | None:
        _require_context(dialog_context)
        active = dialog_context.active_dialog
        return active.state if active is not None else None

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        _require_context(dialog_context)
        if not isinstance(memory, dict):
            raise TypeError("memory must be a dict.")
        active = dialog_context.active_dialog
        if active is None:
            raise RuntimeError("Cannot set ThisMemoryScope. There is no active dialog in the context.")
        active.state.clear()
        active.state.update(memory)


def _public_attributes(obj: Any) -> dict[str, Any] | None:
    if obj is None:
        return None
    return {
        name: value
        for name, value in vars(obj).items()
        if not name.startswith("_") and not callable(value)
    }


class ClassMemoryScope(MemoryScope):
    """Read-only attributes of the active dialog object."""

    def __init__(self, name: str = ScopePath.CLASS):
        super().__init__(name, include_in_snapshot=False)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any] | None:
        _require_context(dialog_context)
        active = dialog_context.active_dialog
        if active is None:
            return None
        return _public_attributes(dialog_context.find_dialog(active.id))

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        raise NotImplementedError("You cannot set the memory for a read-only memory scope.")


class DialogClassMemoryScope(ClassMemoryScope):
    """Read-only attributes of the containing dialog object."""

    def __init__(self):
        super().__init__(ScopePath.DIALOG_CLASS)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any] | None:
        _require_context(dialog_context)
        instance = _container_instance(dialog_context)
        if instance is None:
            return None
        return _public_attributes(dialog_context.find_dialog(instance.id))


class DialogContextMemoryScope(MemoryScope):
    """Read-only description of the dialog stack."""

    def __init__(self):
        super().__init__(ScopePath.DIALOG_CONTEXT, include_in_snapshot=False)

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any]:
        _require_context(dialog_context)

        current = dialog_context
        while current.child is not None:
            current = current.child

        stack: list[str] = []
        while current is not None:
            stack.extend(instance.id for instance in current.stack)
            current = current.parent

        active = dialog_context.active_dialog
        parent_active = dialog_context.parent.active_dialog if dialog_context.parent else None
        return {
            "stack": stack,
            "activeDialog": active.id if active is not None else None,
            "parent": parent_active.id if parent_active is not None else None,
        }

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        raise NotImplementedError("You can't modify the dialogcontext scope.")


class BotStateMemoryScope(MemoryScope):
    """Exposes the turn-cached state of a BotState registered in turn state."""

    def __init__(self, bot_state_type: type[BotState], name: str):
        super().__init__(name)
        self.bot_state_type = bot_state_type

    def get_memory(self, dialog_context: DialogContext) -> dict[str, Any] | None:
        _require_context(dialog_context)
        bot_state = self._get_bot_state(dialog_context)
        if bot_state is None:
            return None
        return bot_state.get(dialog_context.context)

    def set_memory(self, dialog_context: DialogContext, memory: Any) -> None:
        raise NotImplementedError("You cannot replace the root BotState object.")

    async def load(self, dialog_context: DialogContext, force: bool = False) -> None:
        bot_state = self._get_bot_state(dialog_context)
        if bot_state is not None:
            await bot_state.load(dialog_context.context, force)

    async def save_changes(self, dialog_context: DialogContext, force: bool = False) -> None:
        bot_state = self._get_bot_state(dialog_context)
        if bot_state is not None:
            await bot_state.save_changes(dialog_context.context, force)

    async def delete(self, dialog_context: DialogContext) -> None:
        bot_state = self._get_bot_state(dialog_context)
        if bot_state is not None:
            await bot_state.delete(dialog_context.context)

    def _get_bot_state(self, dialog_context: DialogContext) -> BotState | None:
        turn_state = dialog_context.context.turn_state
        bot_state = turn_state.get(self.bot_state_type)
        if isinstance(bot_state, self.bot_state_type):
            return bot_state
        for value in turn_state.values():
            if isinstance(value, self.bot_state_type):
                return value
        return None


class ConversationMemoryScope(BotStateMemoryScope):
    def __init__(self):
        super().__init__(ConversationState, ScopePath.CONVERSATION)


class UserMemoryScope(BotStateMemoryScope):
    def __init__(self):
        super().__init__(UserState, ScopePath.USER)
