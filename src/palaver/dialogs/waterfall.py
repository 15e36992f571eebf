"""Waterfall dialogs: a fixed sequence of async steps."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from palaver.core.turn_context import TurnContext
from palaver.models import ActivityTypes

from .dialog import Dialog
from .dialog_context import DialogContext
from .models import DialogInstance, DialogReason, DialogState, DialogTurnResult

WaterfallStep = Callable[["WaterfallStepContext"], Awaitable[DialogTurnResult]]


class WaterfallDialog(Dialog):
    """Runs steps in order, one per turn unless a step calls `next()`.

    Each step receives a WaterfallStepContext and usually ends by prompting
    the user or starting a child dialog. The child's result is passed to the
    following step as `step_context.result`.
    """

    PERSISTED_OPTIONS = "options"
    PERSISTED_VALUES = "values"
    PERSISTED_INSTANCE_ID = "instanceId"
    STEP_INDEX = "stepIndex"

    def __init__(self, dialog_id: str, steps: list[WaterfallStep] | None = None):
        super().__init__(dialog_id)
        self._steps: list[WaterfallStep] = list(steps) if steps else []

    def get_version(self) -> str:
        return f"{self.id}:{len(self._steps)}"

    def add_step(self, step: WaterfallStep) -> "WaterfallDialog":
        if step is None:
            raise TypeError("WaterfallDialog.add_step(): step cannot be None.")
        self._steps.append(step)
        return self

    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("WaterfallDialog.begin_dialog(): dialog_context cannot be None.")

        state = dialog_context.active_dialog.state
        instance_id = str(uuid.uuid4())
        state[self.PERSISTED_OPTIONS] = options
        state[self.PERSISTED_VALUES] = {}
        state[self.PERSISTED_INSTANCE_ID] = instance_id

        self.track_event("WaterfallStart", {"DialogId": self.id, "InstanceId": instance_id})
        return await self.run_step(dialog_context, 0, DialogReason.BEGIN_CALLED, None)

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("WaterfallDialog.continue_dialog(): dialog_context cannot be None.")

        if dialog_context.context.activity.type != ActivityTypes.MESSAGE:
            return Dialog.END_OF_TURN

        return await self.resume_dialog(
            dialog_context, DialogReason.CONTINUE_CALLED, dialog_context.context.activity.text
        )

    async def resume_dialog(
        self, dialog_context: DialogContext, reason: DialogReason, result: object = None
    ) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("WaterfallDialog.resume_dialog(): dialog_context cannot be None.")

        index = dialog_context.active_dialog.state.get(self.STEP_INDEX, 0)
        return await self.run_step(dialog_context, index + 1, reason, result)

    async def end_dialog(self, context: TurnContext, instance: DialogInstance, reason: DialogReason) -> None:
        state = instance.state
        instance_id = state.get(self.PERSISTED_INSTANCE_ID)
        if reason == DialogReason.CANCEL_CALLED:
            index = state.get(self.STEP_INDEX, 0)
            self.track_event(
                "WaterfallCancel",
                {"DialogId": self.id, "StepName": self.get_step_name(index), "InstanceId": instance_id},
            )
        elif reason == DialogReason.END_CALLED:
            self.track_event("WaterfallComplete", {"DialogId": self.id, "InstanceId": instance_id})

    async def on_step(self, step_context: "WaterfallStepContext") -> DialogTurnResult:
        instance_id = step_context.active_dialog.state.get(self.PERSISTED_INSTANCE_ID)
        self.track_event(
            "WaterfallStep",
            {
                "DialogId": self.id,
                "StepName": self.get_step_name(step_context.index),
                "InstanceId": instance_id,
            },
        )
        return await self._steps[step_context.index](step_context)

    async def run_step(
        self, dialog_context: DialogContext, index: int, reason: DialogReason, result: object
    ) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("WaterfallDialog.run_step(): dialog_context cannot be None.")

        if index < len(self._steps):
            state = dialog_context.active_dialog.state
            state[self.STEP_INDEX] = index
            step_context = WaterfallStepContext(
                self,
                dialog_context,
                state.get(self.PERSISTED_OPTIONS),
                state.setdefault(self.PERSISTED_VALUES, {}),
                index,
                reason,
                result,
            )
            return await self.on_step(step_context)

        return await dialog_context.end_dialog(result)

    def get_step_name(self, index: int) -> str:
        name = getattr(self._steps[index], "__qualname__", "") if index < len(self._steps) else ""
        if not name or "<lambda>" in name:
            name = f"Step{index + 1}of{len(self._steps)}"
        return name


class WaterfallStepContext(DialogContext):
    """DialogContext for a single waterfall step."""

    def __init__(
        self,
        parent_waterfall: WaterfallDialog,
        dialog_context: DialogContext,
        options: object,
        values: dict[str, Any],
        index: int,
        reason: DialogReason,
        result: object = None,
    ):
        super().__init__(dialog_context.dialogs, dialog_context, DialogState(dialog_context.stack))
        self.parent = dialog_context.parent
        self._wf_parent = parent_waterfall
        self._next_called = False
        self._index = index
        self._options = options
        self._reason = reason
        self._result = result
        self._values = values

    @property
    def index(self) -> int:
        return self._index

    @property
    def options(self) -> object:
        return self._options

    @property
    def reason(self) -> DialogReason:
        return self._reason

    @property
    def result(self) -> object:
        return self._result

    @property
    def values(self) -> dict[str, Any]:
        return self._values

    async def next(self, result: object = None) -> DialogTurnResult:
        """Skip to the next step, passing it `result`.

        Raises:
            RuntimeError: If already called during this step.
        """
        if self._next_called:
            raise RuntimeError(
                f"WaterfallStepContext.next(): method already called for dialog and step "
                f"'{self._wf_parent.id}[{self._index}]'."
            )
        self._next_called = True
        return await self._wf_parent.resume_dialog(self, DialogReason.NEXT_CALLED, result)
