"""Tests for the dialog stack, waterfalls and component dialogs."""

from unittest.mock import MagicMock

import pytest

from palaver.adapters import TestAdapter
from palaver.core import BotTelemetryClient, MessageFactory, TurnContext
from palaver.dialogs import (
    ComponentDialog,
    Dialog,
    DialogEvents,
    DialogNotFoundError,
    DialogReason,
    DialogSet,
    DialogTurnStatus,
    PromptOptions,
    TextPrompt,
    WaterfallDialog,
)
from palaver.models import ActivityTypes


class WaitingDialog(Dialog):
    """Waits one turn, then ends on the next reply."""

    def __init__(self, dialog_id=None):
        super().__init__(dialog_id)
        self.ended = []
        self.reprompted = 0

    async def begin_dialog(self, dialog_context, options=None):
        dialog_context.active_dialog.state["options"] = options
        return Dialog.END_OF_TURN

    async def end_dialog(self, context, instance, reason):
        self.ended.append(reason)

    async def reprompt_dialog(self, context, instance):
        self.reprompted += 1


def make_bot(dialog, conversation_state):
    """Bot logic running `dialog` as the root dialog each turn."""
    accessor = conversation_state.create_property("DialogState")

    async def logic(context):
        result = await Dialog.run(dialog, context, accessor)
        if result.status == DialogTurnStatus.COMPLETE:
            await context.send_activity(f"Done: {result.result}")
        await conversation_state.save_changes(context)

    return logic


async def create_dialog_context(conversation_state, adapter, *dialogs, text="hi"):
    dialog_set = DialogSet(conversation_state.create_property("DialogState"))
    for dialog in dialogs:
        dialog_set.add(dialog)
    context = TurnContext(adapter, adapter.make_activity(text))
    return await dialog_set.create_context(context)


class TestDialogSet:
    """Tests for DialogSet registration."""

    def test_duplicate_ids_are_renamed(self):
        dialog_set = DialogSet()
        first = WaitingDialog("a")
        second = WaitingDialog("a")
        third = WaitingDialog("a")

        dialog_set.add(first).add(second).add(third)

        assert [d.id for d in dialog_set.dialogs] == ["a", "a2", "a3"]
        assert dialog_set.find("a2") is second

    def test_adding_same_dialog_twice_is_a_no_op(self):
        dialog = WaitingDialog("a")
        dialog_set = DialogSet().add(dialog).add(dialog)
        assert len(dialog_set.dialogs) == 1
        assert dialog.id == "a"

    def test_add_rejects_non_dialogs(self):
        with pytest.raises(TypeError):
            DialogSet().add(None)
        with pytest.raises(TypeError):
            DialogSet().add("dialog")

    def test_find(self):
        dialog_set = DialogSet().add(WaitingDialog("a"))
        assert "a" in dialog_set
        assert dialog_set.find("missing") is None
        with pytest.raises(ValueError):
            dialog_set.find("")

    def test_default_id_is_class_name(self):
        assert WaitingDialog().id == "WaitingDialog"

    def test_version_changes_when_dialogs_added(self):
        dialog_set = DialogSet().add(WaitingDialog("a"))
        before = dialog_set.get_version()
        dialog_set.add(WaitingDialog("b"))
        assert dialog_set.get_version() != before
        assert len(before) == 64

    def test_telemetry_client_propagates(self):
        client = MagicMock(spec=BotTelemetryClient)
        dialog = WaitingDialog("a")
        dialog_set = DialogSet().add(dialog)

        dialog_set.telemetry_client = client

        assert dialog.telemetry_client is client

    @pytest.mark.asyncio
    async def test_create_context_requires_accessor(self, turn_context):
        with pytest.raises(TypeError):
            await DialogSet().create_context(turn_context)


class TestDialogContext:
    """Tests for pushing and popping the dialog stack."""

    @pytest.mark.asyncio
    async def test_begin_dialog_pushes_instance(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, WaitingDialog("a"))

        result = await dc.begin_dialog("a", {"x": 1})

        assert result.status == DialogTurnStatus.WAITING
        assert dc.active_dialog.id == "a"
        assert dc.active_dialog.state["options"] == {"x": 1}
        assert dc.active_dialog.version == "a"

    @pytest.mark.asyncio
    async def test_begin_dialog_errors(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter)

        with pytest.raises(ValueError):
            await dc.begin_dialog("")
        with pytest.raises(DialogNotFoundError) as exc_info:
            await dc.begin_dialog("missing")
        assert exc_info.value.status_code == 404
        assert "missing" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_prompt_requires_options(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, TextPrompt("text"))
        with pytest.raises(TypeError):
            await dc.prompt("text", None)

    @pytest.mark.asyncio
    async def test_continue_with_empty_stack(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter)
        result = await dc.continue_dialog()
        assert result.status == DialogTurnStatus.EMPTY

    @pytest.mark.asyncio
    async def test_continue_ends_single_turn_dialog(self, conversation_state, adapter):
        dialog = WaitingDialog("a")
        dc = await create_dialog_context(conversation_state, adapter, dialog)
        await dc.begin_dialog("a")

        result = await dc.continue_dialog()

        assert result.status == DialogTurnStatus.COMPLETE
        assert dc.active_dialog is None
        assert dialog.ended == [DialogReason.END_CALLED]

    @pytest.mark.asyncio
    async def test_end_dialog_resumes_parent(self, conversation_state, adapter):
        resumed = []

        class Parent(WaitingDialog):
            async def resume_dialog(self, dialog_context, reason, result=None):
                resumed.append((reason, result))
                return Dialog.END_OF_TURN

        dc = await create_dialog_context(conversation_state, adapter, Parent("parent"), WaitingDialog("child"))
        await dc.begin_dialog("parent")
        await dc.begin_dialog("child")

        result = await dc.end_dialog("answer")

        assert result.status == DialogTurnStatus.WAITING
        assert resumed == [(DialogReason.END_CALLED, "answer")]
        assert [i.id for i in dc.stack] == ["parent"]
        assert dc.state.get_value("turn.lastResult") == "answer"

    @pytest.mark.asyncio
    async def test_cancel_all_dialogs(self, conversation_state, adapter):
        first = WaitingDialog("a")
        second = WaitingDialog("b")
        dc = await create_dialog_context(conversation_state, adapter, first, second)
        await dc.begin_dialog("a")
        await dc.begin_dialog("b")

        result = await dc.cancel_all_dialogs()

        assert result.status == DialogTurnStatus.CANCELLED
        assert dc.stack == []
        assert first.ended == [DialogReason.CANCEL_CALLED]
        assert second.ended == [DialogReason.CANCEL_CALLED]

    @pytest.mark.asyncio
    async def test_cancel_with_nothing_active(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter)
        result = await dc.cancel_all_dialogs()
        assert result.status == DialogTurnStatus.EMPTY

    @pytest.mark.asyncio
    async def test_cancel_stops_when_event_handled(self, conversation_state, adapter):
        class Guard(WaitingDialog):
            async def on_pre_bubble_event(self, dialog_context, dialog_event):
                return dialog_event.name == DialogEvents.CANCEL_DIALOG

        dc = await create_dialog_context(conversation_state, adapter, Guard("guard"), WaitingDialog("b"))
        await dc.begin_dialog("guard")
        await dc.begin_dialog("b")

        await dc.cancel_all_dialogs()

        assert [i.id for i in dc.stack] == ["guard"]

    @pytest.mark.asyncio
    async def test_replace_dialog(self, conversation_state, adapter):
        first = WaitingDialog("a")
        dc = await create_dialog_context(conversation_state, adapter, first, WaitingDialog("b"))
        await dc.begin_dialog("a")

        await dc.replace_dialog("b", "opts")

        assert [i.id for i in dc.stack] == ["b"]
        assert dc.active_dialog.state["options"] == "opts"
        assert first.ended == [DialogReason.REPLACE_CALLED]

    @pytest.mark.asyncio
    async def test_replace_with_same_dialog_records_repeat(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, WaitingDialog("a"))
        await dc.begin_dialog("a")

        await dc.replace_dialog("a")

        assert dc.state.get_value("turn.__repeatedIds") == ["a"]

    @pytest.mark.asyncio
    async def test_reprompt_dialog(self, conversation_state, adapter):
        dialog = WaitingDialog("a")
        dc = await create_dialog_context(conversation_state, adapter, dialog)

        await dc.reprompt_dialog()
        assert dialog.reprompted == 0

        await dc.begin_dialog("a")
        await dc.reprompt_dialog()
        assert dialog.reprompted == 1

    @pytest.mark.asyncio
    async def test_emit_event(self, conversation_state, adapter):
        seen = []

        class Listener(WaitingDialog):
            async def on_pre_bubble_event(self, dialog_context, dialog_event):
                seen.append((dialog_event.name, dialog_event.value))
                return dialog_event.name == "custom"

        dc = await create_dialog_context(conversation_state, adapter, Listener("l"))
        assert await dc.emit_event("custom") is False

        await dc.begin_dialog("l")
        assert await dc.emit_event("custom", 42) is True
        assert await dc.emit_event("other") is False
        assert seen == [("custom", 42), ("other", None)]

    @pytest.mark.asyncio
    async def test_get_locale(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter)
        assert dc.get_locale() == "en-us"

        dc.context.locale = "fr-fr"
        assert dc.get_locale() == "fr-fr"

    @pytest.mark.asyncio
    async def test_get_locale_falls_back_to_settings(self, conversation_state):
        adapter = TestAdapter()
        adapter.locale = None
        dc = await create_dialog_context(conversation_state, adapter)
        assert dc.get_locale() == "en-us"


class TestWaterfallDialog:
    """Tests for WaterfallDialog step sequencing."""

    @pytest.mark.asyncio
    async def test_runs_one_step_per_turn(self, conversation_state):
        async def step1(step):
            await step.context.send_activity("step1")
            return Dialog.END_OF_TURN

        async def step2(step):
            await step.context.send_activity(f"step2 got {step.result}")
            return Dialog.END_OF_TURN

        async def step3(step):
            return await step.end_dialog("finished")

        waterfall = WaterfallDialog("wf", [step1, step2, step3])
        adapter = TestAdapter(make_bot(waterfall, conversation_state))

        await (
            adapter.send("hi")
            .assert_reply("step1")
            .send("apples")
            .assert_reply("step2 got apples")
            .send("bye")
            .assert_reply("Done: finished")
            .send("again")
            .assert_reply("step1")
        )

    @pytest.mark.asyncio
    async def test_values_persist_between_turns(self, conversation_state):
        async def step1(step):
            step.values["first"] = step.context.activity.text
            return Dialog.END_OF_TURN

        async def step2(step):
            return await step.end_dialog(f"{step.values['first']}+{step.result}")

        waterfall = WaterfallDialog("wf", [step1, step2])
        adapter = TestAdapter(make_bot(waterfall, conversation_state))

        await adapter.send("a").send("b").assert_reply("Done: a+b")

    @pytest.mark.asyncio
    async def test_next_skips_to_following_step(self, conversation_state):
        async def step1(step):
            assert step.reason == DialogReason.BEGIN_CALLED
            return await step.next("skipped")

        async def step2(step):
            assert step.index == 1
            assert step.reason == DialogReason.NEXT_CALLED
            return await step.end_dialog(step.result)

        adapter = TestAdapter(make_bot(WaterfallDialog("wf", [step1, step2]), conversation_state))
        await adapter.test("hi", "Done: skipped")

    @pytest.mark.asyncio
    async def test_next_twice_raises(self, conversation_state, adapter):
        async def step1(step):
            await step.next()
            return await step.next()

        async def step2(step):
            return Dialog.END_OF_TURN

        dc = await create_dialog_context(conversation_state, adapter, WaterfallDialog("wf", [step1, step2]))
        with pytest.raises(RuntimeError, match="already called"):
            await dc.begin_dialog("wf")

    @pytest.mark.asyncio
    async def test_ending_after_last_step(self, conversation_state, adapter):
        async def only(step):
            return Dialog.END_OF_TURN

        dc = await create_dialog_context(conversation_state, adapter, WaterfallDialog("wf", [only]))
        await dc.begin_dialog("wf")

        result = await dc.continue_dialog()

        assert result.status == DialogTurnStatus.COMPLETE
        assert result.result == "hi"

    @pytest.mark.asyncio
    async def test_non_message_activity_does_not_advance(self, conversation_state, adapter):
        async def step1(step):
            return Dialog.END_OF_TURN

        dialog_set = DialogSet(conversation_state.create_property("DialogState"))
        dialog_set.add(WaterfallDialog("wf", [step1, step1]))
        typing = adapter.make_activity()
        typing.type = ActivityTypes.TYPING
        context = TurnContext(adapter, typing)
        dc = await dialog_set.create_context(context)
        await dc.begin_dialog("wf")

        result = await dc.continue_dialog()

        assert result.status == DialogTurnStatus.WAITING
        assert dc.active_dialog.state["stepIndex"] == 0

    def test_version_and_add_step(self):
        async def step(step_context):
            return Dialog.END_OF_TURN

        waterfall = WaterfallDialog("wf").add_step(step).add_step(step)
        assert waterfall.get_version() == "wf:2"
        assert waterfall.get_step_name(0) == step.__qualname__
        with pytest.raises(TypeError):
            waterfall.add_step(None)

    @pytest.mark.asyncio
    async def test_tracks_telemetry(self, conversation_state, adapter):
        async def step1(step):
            return await step.end_dialog()

        client = MagicMock(spec=BotTelemetryClient)
        dialog_set = DialogSet(conversation_state.create_property("DialogState"))
        dialog_set.telemetry_client = client
        dialog_set.add(WaterfallDialog("wf", [step1]))
        dc = await dialog_set.create_context(TurnContext(adapter, adapter.make_activity("hi")))

        await dc.begin_dialog("wf")

        names = [call.args[0] for call in client.track_event.call_args_list]
        assert names == ["WaterfallStart", "WaterfallStep", "WaterfallComplete"]


class GreetingComponent(ComponentDialog):
    def __init__(self):
        super().__init__("greeting")
        self.add_dialog(WaterfallDialog("greetingSteps", [self.ask_name, self.greet]))
        self.add_dialog(TextPrompt("text"))

    async def ask_name(self, step):
        return await step.prompt("text", PromptOptions(prompt=MessageFactory.text("Name?")))

    async def greet(self, step):
        return await step.end_dialog(f"Hello {step.result}")


class TestComponentDialog:
    """Tests for ComponentDialog inner stacks."""

    def test_first_dialog_is_initial(self):
        assert GreetingComponent().initial_dialog_id == "greetingSteps"

    @pytest.mark.asyncio
    async def test_runs_inner_dialogs_to_completion(self, conversation_state):
        adapter = TestAdapter(make_bot(GreetingComponent(), conversation_state))

        await adapter.send("hi").assert_reply("Name?").send("Ada").assert_reply("Done: Hello Ada")

    @pytest.mark.asyncio
    async def test_inner_stack_stored_in_instance_state(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, GreetingComponent())

        result = await dc.begin_dialog("greeting")

        assert result.status == DialogTurnStatus.WAITING
        inner = dc.active_dialog.state["dialogs"]
        assert [i.id for i in inner.dialog_stack] == ["text", "greetingSteps"]
        assert dc.child.active_dialog.id == "text"

    @pytest.mark.asyncio
    async def test_cancel_ends_inner_dialogs(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, GreetingComponent())
        await dc.begin_dialog("greeting")
        inner = dc.active_dialog.state["dialogs"]

        result = await dc.cancel_all_dialogs()

        assert result.status == DialogTurnStatus.CANCELLED
        assert dc.stack == []
        assert inner.dialog_stack == []

    @pytest.mark.asyncio
    async def test_reprompt_reaches_inner_prompt(self, conversation_state, adapter):
        dc = await create_dialog_context(conversation_state, adapter, GreetingComponent())
        await dc.begin_dialog("greeting")
        assert adapter.get_next_reply().text == "Name?"

        await dc.reprompt_dialog()

        assert adapter.get_next_reply().text == "Name?"


class TestDialogRun:
    """Tests for the per-turn entry point."""

    @pytest.mark.asyncio
    async def test_sends_state_trace(self, conversation_state):
        adapter = TestAdapter(make_bot(WaitingDialog("a"), conversation_state), send_trace_activity=True)

        await adapter.receive_activity("hi")

        trace = adapter.get_next_reply()
        assert trace.type == ActivityTypes.TRACE
        assert trace.name == "BotState"
        assert trace.label == "Bot State"
        assert "dialog" in trace.value

    @pytest.mark.asyncio
    async def test_error_event_handled_by_dialog(self, conversation_state):
        class Recovering(WaterfallDialog):
            async def on_pre_bubble_event(self, dialog_context, dialog_event):
                if dialog_event.name == DialogEvents.ERROR:
                    await dialog_context.context.send_activity(f"Oops: {dialog_event.value}")
                    return True
                return False

        async def explode(step):
            raise ValueError("boom")

        adapter = TestAdapter(make_bot(Recovering("wf", [explode]), conversation_state))
        await adapter.test("hi", "Oops: boom")

    @pytest.mark.asyncio
    async def test_unhandled_error_is_raised(self, conversation_state):
        async def explode(step):
            raise ValueError("boom")

        adapter = TestAdapter(make_bot(WaterfallDialog("wf", [explode]), conversation_state))
        with pytest.raises(ValueError, match="boom"):
            await adapter.receive_activity("hi")

    @pytest.mark.asyncio
    async def test_activity_received_emitted_once_per_turn(self, conversation_state):
        received = []

        class Listener(WaitingDialog):
            async def on_pre_bubble_event(self, dialog_context, dialog_event):
                if dialog_event.name == DialogEvents.ACTIVITY_RECEIVED:
                    received.append(dialog_event.value.text)
                return False

        adapter = TestAdapter(make_bot(Listener("l"), conversation_state))

        await adapter.receive_activity("one")
        await adapter.receive_activity("two")

        assert received == ["two"]
