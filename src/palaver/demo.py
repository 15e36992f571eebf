"""Demo bot used by the HTTP service and the console chat.

Typing "profile" walks through a small waterfall of prompts; other messages
are answered from the QnA Maker knowledge base when one is configured.
"""

import logging
from dataclasses import dataclass

from palaver.core import (
    ActivityHandler,
    ConversationState,
    MessageFactory,
    Storage,
    TurnContext,
    UserState,
    get_storage,
)
from palaver.dialogs import (
    ChoicePrompt,
    ComponentDialog,
    ConfirmPrompt,
    Dialog,
    NumberPrompt,
    PromptOptions,
    PromptValidatorContext,
    TextPrompt,
    WaterfallDialog,
    WaterfallStepContext,
)
from palaver.dialogs.choices import Choice
from palaver.models import ChannelAccount, Settings, get_settings
from palaver.qna import QnAMakerDialog

logger = logging.getLogger(__name__)

PROFILE_COMMANDS = ("profile", "start")
HELP_TEXT = "Type 'profile' to tell me about yourself, or ask me a question."
ERROR_TEXT = "The bot encountered an error or bug."
COLORS = ["Red", "Green", "Blue"]


@dataclass
class UserProfile:
    name: str = ""
    age: int | None = None
    color: str | None = None


# =============================================================================
# Dialogs
# =============================================================================


async def age_validator(prompt_context: PromptValidatorContext) -> bool:
    return prompt_context.recognized.succeeded and 0 < prompt_context.recognized.value < 150


class ProfileDialog(ComponentDialog):
    """Asks for a name, an age and a favourite color, then confirms."""

    def __init__(self, user_state: UserState):
        super().__init__("ProfileDialog")
        self.profile_accessor = user_state.create_property("UserProfile")

        self.add_dialog(
            WaterfallDialog(
                "ProfileWaterfall",
                [self.name_step, self.age_step, self.color_step, self.confirm_step, self.summary_step],
            )
        )
        self.add_dialog(TextPrompt("NamePrompt"))
        self.add_dialog(NumberPrompt("AgePrompt", age_validator))
        self.add_dialog(ChoicePrompt("ColorPrompt"))
        self.add_dialog(ConfirmPrompt("ConfirmPrompt"))
        self.initial_dialog_id = "ProfileWaterfall"

    async def name_step(self, step_context: WaterfallStepContext):
        return await step_context.prompt(
            "NamePrompt", PromptOptions(prompt=MessageFactory.text("What is your name?"))
        )

    async def age_step(self, step_context: WaterfallStepContext):
        step_context.values["name"] = step_context.result
        return await step_context.prompt(
            "AgePrompt",
            PromptOptions(
                prompt=MessageFactory.text(f"Nice to meet you, {step_context.result}. How old are you?"),
                retry_prompt=MessageFactory.text("Please enter an age between 1 and 149."),
            ),
        )

    async def color_step(self, step_context: WaterfallStepContext):
        step_context.values["age"] = step_context.result
        return await step_context.prompt(
            "ColorPrompt",
            PromptOptions(
                prompt=MessageFactory.text("Which color do you like best?"),
                choices=[Choice(value=color) for color in COLORS],
            ),
        )

    async def confirm_step(self, step_context: WaterfallStepContext):
        step_context.values["color"] = step_context.result.value
        return await step_context.prompt(
            "ConfirmPrompt", PromptOptions(prompt=MessageFactory.text("Shall I remember this?"))
        )

    async def summary_step(self, step_context: WaterfallStepContext):
        if not step_context.result:
            await step_context.context.send_activity("Okay, I won't keep it.")
            return await step_context.end_dialog()

        profile = UserProfile(
            name=step_context.values["name"],
            age=step_context.values["age"],
            color=step_context.values["color"],
        )
        await self.profile_accessor.set(step_context.context, profile)
        await step_context.context.send_activity(
            f"Thanks {profile.name}. You are {profile.age} and like {profile.color.lower()}."
        )
        return await step_context.end_dialog(profile)


class MainDialog(ComponentDialog):
    """Routes each message to the profile dialog, the knowledge base or help."""

    def __init__(self, user_state: UserState, settings: Settings | None = None):
        super().__init__("MainDialog")
        settings = settings or get_settings()

        self.qna_enabled = settings.qna_configured
        self.add_dialog(ProfileDialog(user_state))
        if self.qna_enabled:
            self.add_dialog(
                QnAMakerDialog(
                    settings.qna_knowledge_base_id,
                    settings.qna_endpoint_key,
                    settings.qna_host,
                )
            )
        self.add_dialog(WaterfallDialog("MainWaterfall", [self.route_step, self.final_step]))
        self.initial_dialog_id = "MainWaterfall"

    async def route_step(self, step_context: WaterfallStepContext):
        text = (step_context.context.activity.text or "").strip().lower()
        if text in PROFILE_COMMANDS:
            return await step_context.begin_dialog("ProfileDialog")
        if self.qna_enabled and text:
            return await step_context.begin_dialog("QnAMakerDialog")

        await step_context.context.send_activity(HELP_TEXT)
        return await step_context.end_dialog()

    async def final_step(self, step_context: WaterfallStepContext):
        return await step_context.end_dialog(step_context.result)


# =============================================================================
# Bot
# =============================================================================


class DemoBot(ActivityHandler):
    """Runs the main dialog for every message and saves state after each turn."""

    def __init__(self, conversation_state: ConversationState, user_state: UserState, dialog: Dialog):
        self.conversation_state = conversation_state
        self.user_state = user_state
        self.dialog = dialog
        self.dialog_state = conversation_state.create_property("DialogState")

    async def on_turn(self, turn_context: TurnContext) -> None:
        await super().on_turn(turn_context)
        await self.conversation_state.save_changes(turn_context)
        await self.user_state.save_changes(turn_context)

    async def on_message_activity(self, turn_context: TurnContext) -> None:
        await Dialog.run(self.dialog, turn_context, self.dialog_state)

    async def on_members_added_activity(
        self, members_added: list[ChannelAccount], turn_context: TurnContext
    ) -> None:
        recipient_id = turn_context.activity.recipient.id if turn_context.activity.recipient else None
        for member in members_added:
            if member.id != recipient_id:
                await turn_context.send_activity(f"Welcome! {HELP_TEXT}")


def create_demo_bot(settings: Settings | None = None, storage: Storage | None = None) -> DemoBot:
    settings = settings or get_settings()
    storage = storage or get_storage(settings)
    conversation_state = ConversationState(storage)
    user_state = UserState(storage)
    return DemoBot(conversation_state, user_state, MainDialog(user_state, settings))


def create_on_turn_error(conversation_state: ConversationState | None = None):
    """Turn error handler: log, apologise, send a trace and reset the conversation."""

    async def on_turn_error(turn_context: TurnContext, error: Exception) -> None:
        logger.exception("Unhandled error during turn: %s", error)

        await turn_context.send_activity(ERROR_TEXT)
        await turn_context.send_trace_activity(
            "OnTurnError Trace",
            f"{error}",
            "https://www.botframework.com/schemas/error",
            "TurnError",
        )

        if conversation_state is not None:
            await conversation_state.delete(turn_context)

    return on_turn_error


__all__ = [
    "DemoBot",
    "MainDialog",
    "ProfileDialog",
    "UserProfile",
    "create_demo_bot",
    "create_on_turn_error",
]
