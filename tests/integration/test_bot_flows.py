"""End-to-end conversations with the demo bot."""

import pytest

from palaver.adapters import TestAdapter
from palaver.core import MemoryStorage, TurnContext
from palaver.demo import ERROR_TEXT, HELP_TEXT, UserProfile, create_demo_bot, create_on_turn_error
from palaver.models import Settings


@pytest.fixture
def bot():
    return create_demo_bot(Settings(), MemoryStorage())


@pytest.fixture
def adapter(bot):
    return TestAdapter(bot.on_turn)


async def load_profile(bot, adapter):
    context = TurnContext(adapter, adapter.make_activity("check"))
    await bot.user_state.load(context)
    return await bot.user_state.create_property("UserProfile").get(context)


class TestProfileFlow:
    """Tests for the profile waterfall."""

    @pytest.mark.asyncio
    async def test_full_profile(self, bot, adapter):
        await (
            adapter.test("profile", "What is your name?")
            .test("Ada", "Nice to meet you, Ada. How old are you?")
            .test("two hundred", "Please enter an age between 1 and 149.")
            .test("36", "Which color do you like best? (1) Red, (2) Green, or (3) Blue")
            .test("green", "Shall I remember this? (1) Yes or (2) No")
            .test("yes", "Thanks Ada. You are 36 and like green.")
            .assert_no_reply()
        )

        profile = await load_profile(bot, adapter)
        assert profile == UserProfile(name="Ada", age=36, color="Green")

    @pytest.mark.asyncio
    async def test_declined_profile_is_not_saved(self, bot, adapter):
        await (
            adapter.test("start", "What is your name?")
            .test("Bo", "Nice to meet you, Bo. How old are you?")
            .test("40", "Which color do you like best? (1) Red, (2) Green, or (3) Blue")
            .test("3", "Shall I remember this? (1) Yes or (2) No")
            .test("no", "Okay, I won't keep it.")
        )

        assert await load_profile(bot, adapter) is None

    @pytest.mark.asyncio
    async def test_conversation_continues_after_profile(self, adapter):
        await (
            adapter.test("profile", "What is your name?")
            .test("Ada", "Nice to meet you, Ada. How old are you?")
            .test("36", "Which color do you like best? (1) Red, (2) Green, or (3) Blue")
            .test("blue", "Shall I remember this? (1) Yes or (2) No")
            .test("yes", "Thanks Ada. You are 36 and like blue.")
            .test("hello", HELP_TEXT)
        )


class TestDemoBot:
    @pytest.mark.asyncio
    async def test_help_for_unknown_messages(self, adapter):
        await adapter.test("hello", HELP_TEXT).assert_no_reply()

    @pytest.mark.asyncio
    async def test_welcome_on_members_added(self, bot, adapter):
        await adapter.create_conversation("test", bot.on_turn)

        assert adapter.get_next_reply().text == f"Welcome! {HELP_TEXT}"

    @pytest.mark.asyncio
    async def test_turn_error_resets_conversation(self, bot):
        async def failing(context):
            await bot.on_turn(context)
            if context.activity.text == "crash":
                raise RuntimeError("boom")

        adapter = TestAdapter(failing)
        adapter.on_turn_error = create_on_turn_error(bot.conversation_state)

        await (
            adapter.test("profile", "What is your name?")
            .test("crash", "Nice to meet you, crash. How old are you?")
            .assert_reply(ERROR_TEXT)
            .test("hello", HELP_TEXT)
        )
