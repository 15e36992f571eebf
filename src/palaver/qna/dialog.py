"""Waterfall dialog answering questions from a QnA Maker knowledge base.

Each user message runs four steps:

1. Query the knowledge base. With active learning enabled and several close
   low-score answers, show a "Did you mean" card and wait.
2. Record the user's pick as training feedback, or acknowledge "None of the
   above".
3. If the answer has follow-up prompts, show them and wait.
4. Send the answer (or the no-answer message), or restart when the user
   picked a follow-up prompt.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from palaver.core.message_factory import MessageFactory
from palaver.dialogs.dialog_context import DialogContext
from palaver.dialogs.models import DialogEvent, DialogEvents, DialogReason, DialogTurnResult, DialogTurnStatus, TurnPath
from palaver.dialogs.object_path import ObjectPath
from palaver.dialogs.waterfall import WaterfallDialog, WaterfallStepContext
from palaver.models import Activity, ActivityTypes

from .active_learning import MAXIMUM_SCORE_FOR_LOW_SCORE_VARIATION
from .card_builder import QnACardBuilder
from .maker import PERCENTAGE_DIVISOR, QnAMaker
from .models import (
    FeedbackRecord,
    FeedbackRecords,
    Metadata,
    QnAMakerEndpoint,
    QnAMakerOptions,
    QnARequestContext,
    QueryResult,
    RankerTypes,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.3
DEFAULT_TOP_N = 3
DEFAULT_NO_ANSWER = "No QnAMaker answers found."
DEFAULT_CARD_TITLE = "Did you mean:"
DEFAULT_CARD_NO_MATCH_TEXT = "None of the above."
DEFAULT_CARD_NO_MATCH_RESPONSE = "Thanks for the feedback."


@dataclass
class QnADialogResponseOptions:
    no_answer: Activity | None = None
    active_learning_card_title: str = DEFAULT_CARD_TITLE
    card_no_match_text: str = DEFAULT_CARD_NO_MATCH_TEXT
    card_no_match_response: Activity | None = None


@dataclass
class QnAMakerDialogOptions:
    qna_maker_options: QnAMakerOptions = field(default_factory=QnAMakerOptions)
    response_options: QnADialogResponseOptions = field(default_factory=QnADialogResponseOptions)


class QnAMakerDialog(WaterfallDialog):
    """Answers the user from a knowledge base, with active learning and multi-turn prompts."""

    QNA_CONTEXT_DATA = "qnaContextData"
    PREVIOUS_QNA_ID = "prevQnAId"
    OPTIONS = "options"
    SUGGESTED_QUESTIONS = "this.suggestedQuestions"

    # Waterfall values
    CURRENT_QUERY = "currentQuery"
    QNA_DATA = "qnaData"

    def __init__(
        self,
        knowledge_base_id: str,
        endpoint_key: str,
        host_name: str,
        no_answer: Activity | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        active_learning_card_title: str = DEFAULT_CARD_TITLE,
        card_no_match_text: str = DEFAULT_CARD_NO_MATCH_TEXT,
        top: int = DEFAULT_TOP_N,
        card_no_match_response: Activity | None = None,
        strict_filters: list[Metadata] | None = None,
        dialog_id: str = "QnAMakerDialog",
        http_client: httpx.AsyncClient | None = None,
        ranker_type: str = RankerTypes.DEFAULT.value,
        is_test: bool = False,
        log_personal_information: bool = False,
    ):
        super().__init__(dialog_id)
        if not knowledge_base_id:
            raise TypeError("QnAMakerDialog(): knowledge_base_id cannot be empty.")
        if not host_name:
            raise TypeError("QnAMakerDialog(): host_name cannot be empty.")
        if not endpoint_key:
            raise TypeError("QnAMakerDialog(): endpoint_key cannot be empty.")

        self.knowledge_base_id = knowledge_base_id
        self.endpoint_key = endpoint_key
        self.host_name = host_name
        self.threshold = threshold
        self.top = top
        self.active_learning_card_title = active_learning_card_title
        self.card_no_match_text = card_no_match_text
        self.no_answer = no_answer or MessageFactory.text(DEFAULT_NO_ANSWER)
        self.card_no_match_response = card_no_match_response or MessageFactory.text(DEFAULT_CARD_NO_MATCH_RESPONSE)
        self.strict_filters = strict_filters
        self.ranker_type = ranker_type
        self.is_test = is_test
        self.log_personal_information = log_personal_information
        self.http_client = http_client

        self.add_step(self.call_generate_answer)
        self.add_step(self.call_train)
        self.add_step(self.check_for_multi_turn_prompt)
        self.add_step(self.display_qna_result)

    # -------------------------------------------------------------------------
    # Dialog overrides
    # -------------------------------------------------------------------------

    async def begin_dialog(self, dialog_context: DialogContext, options: object = None) -> DialogTurnResult:
        if dialog_context is None:
            raise TypeError("QnAMakerDialog.begin_dialog(): dialog_context cannot be None.")

        if not dialog_context.context.activity.is_type(ActivityTypes.MESSAGE):
            return self.END_OF_TURN

        dialog_options = QnAMakerDialogOptions(
            qna_maker_options=self.get_qna_maker_options(dialog_context),
            response_options=self.get_qna_response_options(dialog_context),
        )
        if options is not None:
            dialog_options = ObjectPath.assign(dialog_options, options)

        ObjectPath.set_path_value(dialog_context.active_dialog.state, self.OPTIONS, dialog_options)
        return await super().begin_dialog(dialog_context, dialog_options)

    async def continue_dialog(self, dialog_context: DialogContext) -> DialogTurnResult:
        if dialog_context.state.get_bool_value(TurnPath.INTERRUPTED, False):
            return await dialog_context.end_dialog()
        return await super().continue_dialog(dialog_context)

    async def on_pre_bubble_event(self, dialog_context: DialogContext, dialog_event: DialogEvent) -> bool:
        """Keep the turn when the reply belongs to this dialog or the knowledge base can answer it."""
        activity = dialog_context.context.activity
        if dialog_event.name != DialogEvents.ACTIVITY_RECEIVED or not activity.is_type(ActivityTypes.MESSAGE):
            return await super().on_pre_bubble_event(dialog_context, dialog_event)

        reply = (activity.text or "").strip()
        dialog_options = self._dialog_options(dialog_context)
        if reply.lower() == dialog_options.response_options.card_no_match_text.lower():
            return True

        suggested = dialog_context.state.get_value(self.SUGGESTED_QUESTIONS)
        if suggested and any(question.lower() == reply.lower() for question in suggested):
            return True

        if not reply:
            return False

        client = self.get_qna_maker_client(dialog_context)
        self._reset_options(dialog_context, dialog_options)
        response = await client.get_answers_raw(dialog_context.context, dialog_options.qna_maker_options)
        dialog_context.state.set_value(self._turn_result_path(), response)
        return bool(response.answers)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def get_qna_maker_client(self, dialog_context: DialogContext) -> QnAMaker:
        """The QnAMaker in turn state if present, otherwise one built from this dialog's settings."""
        client = dialog_context.context.turn_state.get(QnAMaker)
        if client is not None:
            return client

        endpoint = QnAMakerEndpoint(
            knowledge_base_id=self.knowledge_base_id,
            endpoint_key=self.endpoint_key,
            host=self.host_name,
        )
        return QnAMaker(
            endpoint,
            self.get_qna_maker_options(dialog_context),
            http_client=self.http_client,
            telemetry_client=self.telemetry_client,
            log_personal_information=self.log_personal_information,
        )

    def get_qna_maker_options(self, dialog_context: DialogContext) -> QnAMakerOptions:
        return QnAMakerOptions(
            score_threshold=self.threshold,
            strict_filters=list(self.strict_filters or []),
            top=self.top,
            context=QnARequestContext(),
            qna_id=0,
            ranker_type=self.ranker_type,
            is_test=self.is_test,
        )

    def get_qna_response_options(self, dialog_context: DialogContext) -> QnADialogResponseOptions:
        return QnADialogResponseOptions(
            no_answer=self.no_answer,
            active_learning_card_title=self.active_learning_card_title or DEFAULT_CARD_TITLE,
            card_no_match_text=self.card_no_match_text or DEFAULT_CARD_NO_MATCH_TEXT,
            card_no_match_response=self.card_no_match_response,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def call_generate_answer(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        step_context.state.remove_value(self.SUGGESTED_QUESTIONS)

        dialog_options = self._dialog_options(step_context)
        self._reset_options(step_context, dialog_options)
        step_context.values[self.CURRENT_QUERY] = step_context.context.activity.text

        client = self.get_qna_maker_client(step_context)
        # Reuse the answer fetched while this turn bubbled through the dialog.
        response = step_context.state.get_value(self._turn_result_path())
        if response is None:
            response = await client.get_answers_raw(step_context.context, dialog_options.qna_maker_options)

        ObjectPath.set_path_value(step_context.active_dialog.state, self.PREVIOUS_QNA_ID, -1)
        step_context.values[self.QNA_DATA] = list(response.answers)

        answers = response.answers
        if answers and answers[0].score <= MAXIMUM_SCORE_FOR_LOW_SCORE_VARIATION / PERCENTAGE_DIVISOR:
            answers = client.get_low_score_variation(answers)
            if len(answers) > 1 and response.active_learning_enabled:
                suggested = [answer.questions[0] for answer in answers if answer.questions]
                message = QnACardBuilder.get_suggestions_card(
                    suggested,
                    dialog_options.response_options.active_learning_card_title,
                    dialog_options.response_options.card_no_match_text,
                )
                await step_context.context.send_activity(message)

                step_context.values[self.QNA_DATA] = list(answers)
                ObjectPath.set_path_value(step_context.active_dialog.state, self.OPTIONS, dialog_options)
                step_context.state.set_value(self.SUGGESTED_QUESTIONS, suggested)
                return DialogTurnResult(DialogTurnStatus.WAITING)

        result = answers[:1]
        step_context.values[self.QNA_DATA] = result
        ObjectPath.set_path_value(step_context.active_dialog.state, self.OPTIONS, dialog_options)
        return await step_context.next(result)

    async def call_train(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        dialog_options = self._dialog_options(step_context)
        train_responses: list[QueryResult] = step_context.values.get(self.QNA_DATA) or []
        current_query = step_context.values.get(self.CURRENT_QUERY)
        reply = step_context.context.activity.text or ""

        if len(train_responses) > 1:
            selected = next(
                (answer for answer in train_responses if answer.questions and answer.questions[0] == reply),
                None,
            )
            if selected is not None:
                step_context.values[self.QNA_DATA] = [selected]
                records = FeedbackRecords(
                    records=[
                        FeedbackRecord(
                            user_id=step_context.context.activity.id,
                            user_question=current_query,
                            qna_id=selected.id,
                        )
                    ]
                )
                await self.get_qna_maker_client(step_context).call_train(records)
                return await step_context.next([selected])

            if reply.lower() == dialog_options.response_options.card_no_match_text.lower():
                await self._send_card_no_match_response(step_context, dialog_options)
                return await step_context.end_dialog()

            return await self.run_step(step_context, 0, DialogReason.BEGIN_CALLED, None)

        return await step_context.next(step_context.result)

    async def check_for_multi_turn_prompt(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        dialog_options = self._dialog_options(step_context)
        response = step_context.result

        if isinstance(response, list) and response:
            answer = response[0]
            if answer.context is not None and answer.context.prompts:
                state = step_context.active_dialog.state
                context_data = dict(ObjectPath.get_path_value(state, self.QNA_CONTEXT_DATA, {}))
                for prompt in answer.context.prompts:
                    context_data[prompt.display_text] = prompt.qna_id

                ObjectPath.set_path_value(state, self.QNA_CONTEXT_DATA, context_data)
                ObjectPath.set_path_value(state, self.PREVIOUS_QNA_ID, answer.id)
                ObjectPath.set_path_value(state, self.OPTIONS, dialog_options)

                message = QnACardBuilder.get_qna_prompts_card(
                    answer, dialog_options.response_options.card_no_match_text
                )
                await step_context.context.send_activity(message)
                return DialogTurnResult(DialogTurnStatus.WAITING)

        return await step_context.next(step_context.result)

    async def display_qna_result(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        dialog_options = self._dialog_options(step_context)
        reply = step_context.context.activity.text or ""

        if reply.lower() == dialog_options.response_options.card_no_match_text.lower():
            await self._send_card_no_match_response(step_context, dialog_options)
            return await step_context.end_dialog()

        previous_qna_id = ObjectPath.get_path_value(step_context.active_dialog.state, self.PREVIOUS_QNA_ID, 0)
        if previous_qna_id and previous_qna_id > 0:
            return await self.run_step(step_context, 0, DialogReason.BEGIN_CALLED, None)

        response = step_context.result
        if isinstance(response, list) and response:
            await step_context.context.send_activity(response[0].answer)
        else:
            no_answer = dialog_options.response_options.no_answer
            await step_context.context.send_activity(no_answer if no_answer is not None else DEFAULT_NO_ANSWER)

        return await step_context.end_dialog()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _dialog_options(self, dialog_context: DialogContext) -> QnAMakerDialogOptions:
        options = ObjectPath.get_path_value(dialog_context.active_dialog.state, self.OPTIONS, None)
        if not isinstance(options, QnAMakerDialogOptions):
            options = QnAMakerDialogOptions(
                qna_maker_options=self.get_qna_maker_options(dialog_context),
                response_options=self.get_qna_response_options(dialog_context),
            )
        return options

    def _turn_result_path(self) -> str:
        return f"turn.qnaresult{id(self)}"

    def _reset_options(self, dialog_context: DialogContext, dialog_options: QnAMakerDialogOptions) -> None:
        """Point the next query at the previous answer's follow-up prompts, if any."""
        qna_options = dialog_options.qna_maker_options
        qna_options.qna_id = 0
        qna_options.context = QnARequestContext()

        state = dialog_context.active_dialog.state
        previous_qna_id = ObjectPath.get_path_value(state, self.PREVIOUS_QNA_ID, 0)
        if previous_qna_id and previous_qna_id > 0:
            qna_options.context = QnARequestContext(previous_qna_id=previous_qna_id)
            context_data = ObjectPath.get_path_value(state, self.QNA_CONTEXT_DATA, {})
            current_qna_id = context_data.get(dialog_context.context.activity.text)
            if current_qna_id is not None:
                qna_options.qna_id = current_qna_id

    async def _send_card_no_match_response(
        self, step_context: WaterfallStepContext, dialog_options: QnAMakerDialogOptions
    ) -> None:
        response = dialog_options.response_options.card_no_match_response
        await step_context.context.send_activity(
            response if response is not None else DEFAULT_CARD_NO_MATCH_RESPONSE
        )
