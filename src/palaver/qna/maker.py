"""QnA Maker client: query a knowledge base and send active learning feedback."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from palaver.core.recognizer import IntentScore, Recognizer, RecognizerResult
from palaver.core.telemetry import BotTelemetryClient, NullTelemetryClient
from palaver.core.turn_context import TurnContext
from palaver.infrastructure.metrics import record_qna_query
from palaver.models import ActivityTypes

from .active_learning import get_low_score_variation
from .models import (
    FeedbackRecords,
    QnAMakerEndpoint,
    QnAMakerOptions,
    QnAMakerTraceInfo,
    QnATelemetryConstants,
    QueryResult,
    QueryResults,
    RankerTypes,
)

logger = logging.getLogger(__name__)

QNA_MAKER_NAME = "QnAMaker"
QNA_MAKER_TRACE_TYPE = "https://www.qnamaker.ai/schemas/trace"
QNA_MAKER_TRACE_LABEL = "QnAMaker Trace"
QNA_MATCH_INTENT = "QnAMatch"

DEFAULT_SCORE_THRESHOLD = 0.3
DEFAULT_TIMEOUT_MS = 100000.0
PERCENTAGE_DIVISOR = 100


# =============================================================================
# Exceptions
# =============================================================================


class QnAMakerError(Exception):
    """Base exception for QnA Maker service failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class QnAAuthenticationError(QnAMakerError):
    """Raised when the endpoint key is rejected."""

    def __init__(self, status_code: int = 401):
        super().__init__("QnA Maker rejected the endpoint key", status_code=status_code, retryable=False)


# =============================================================================
# Client
# =============================================================================


class QnAMaker(Recognizer):
    """Queries a QnA Maker knowledge base.

    Args:
        endpoint: Knowledge base id, endpoint key and host
        options: Default query options
        http_client: Optional shared httpx client
        telemetry_client: Receives a QnaMessage event per query
        log_personal_information: Include the question and user name in telemetry
    """

    def __init__(
        self,
        endpoint: QnAMakerEndpoint,
        options: QnAMakerOptions | None = None,
        http_client: httpx.AsyncClient | None = None,
        telemetry_client: BotTelemetryClient | None = None,
        log_personal_information: bool = False,
    ):
        if endpoint is None:
            raise TypeError("QnAMaker(): endpoint cannot be None")
        if not endpoint.knowledge_base_id:
            raise ValueError("QnAMaker(): knowledge_base_id is required")
        if not endpoint.host:
            raise ValueError("QnAMaker(): host is required")
        if not endpoint.endpoint_key:
            raise ValueError("QnAMaker(): endpoint_key is required")
        if endpoint.host.rstrip("/").endswith(("v2.0", "v3.0")):
            raise NotImplementedError("v2.0 and v3.0 of QnA Maker service is no longer supported in the QnA Maker.")

        self.endpoint = endpoint
        self.options = self._validate_options(options.model_copy(deep=True) if options else QnAMakerOptions())
        self.telemetry_client = telemetry_client or NullTelemetryClient()
        self.log_personal_information = log_personal_information
        self._http_client = http_client

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_answers(
        self,
        context: TurnContext,
        options: QnAMakerOptions | None = None,
        telemetry_properties: dict[str, str] | None = None,
        telemetry_metrics: dict[str, float] | None = None,
    ) -> list[QueryResult]:
        result = await self.get_answers_raw(context, options, telemetry_properties, telemetry_metrics)
        return result.answers

    async def get_answers_raw(
        self,
        context: TurnContext,
        options: QnAMakerOptions | None = None,
        telemetry_properties: dict[str, str] | None = None,
        telemetry_metrics: dict[str, float] | None = None,
    ) -> QueryResults:
        """Query the knowledge base with the text of the incoming message.

        Returns the answers scoring above the threshold, scores scaled to 0..1.

        Raises:
            TypeError: If the turn has no activity.
            ValueError: If the activity is not a message with text, or options are invalid.
            QnAMakerError: If the service call fails.
        """
        if context is None or context.activity is None:
            raise TypeError("QnAMaker.get_answers(): context and its activity are required")

        activity = context.activity
        if not activity.is_type(ActivityTypes.MESSAGE):
            raise ValueError("Activity type is not a message")
        if not activity.text or not activity.text.strip():
            raise ValueError("Null or empty text")

        hydrated = self._validate_options(self._hydrate_options(options))
        results = await self._query_service(activity.text, hydrated)

        await self._emit_trace_info(context, results.answers, hydrated)
        self.on_qna_results(results.answers, context, telemetry_properties, telemetry_metrics)
        return results

    def get_low_score_variation(self, results: list[QueryResult]) -> list[QueryResult]:
        return get_low_score_variation(results)

    async def call_train(self, feedback_records: FeedbackRecords) -> None:
        """Send active learning feedback to the knowledge base."""
        if feedback_records is None:
            raise TypeError("QnAMaker.call_train(): feedback_records cannot be None")

        url = f"{self.endpoint.host}/knowledgebases/{self.endpoint.knowledge_base_id}/train"
        await self._post(url, feedback_records.model_dump(by_alias=True, exclude_none=True, mode="json"), "train")

    async def recognize(self, turn_context: TurnContext) -> RecognizerResult:
        """Recognizer view of a query: the `QnAMatch` intent when an answer is found."""
        answers = await self.get_answers(turn_context)
        result = RecognizerResult(text=turn_context.activity.text, intents={})
        if answers:
            top = answers[0]
            result.intents[QNA_MATCH_INTENT] = IntentScore(score=top.score)
            result.entities = {"answer": [top.answer]}
            result.properties = {"answers": [answer.to_dict() for answer in answers]}
        else:
            result.intents["None"] = IntentScore(score=1.0)
        return result

    # -------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_options(options: QnAMakerOptions) -> QnAMakerOptions:
        if options.score_threshold == 0:
            options.score_threshold = DEFAULT_SCORE_THRESHOLD
        if options.top == 0:
            options.top = 1
        if options.score_threshold < 0 or options.score_threshold > 1:
            raise ValueError(
                f"options: The score_threshold property should be a value between 0 and 1, "
                f"got {options.score_threshold}"
            )
        if options.timeout == 0:
            options.timeout = DEFAULT_TIMEOUT_MS
        if options.top < 1:
            raise ValueError("options: The top property should be an integer greater than 0")
        if not options.ranker_type:
            options.ranker_type = RankerTypes.DEFAULT.value
        return options

    def _hydrate_options(self, query_options: QnAMakerOptions | None) -> QnAMakerOptions:
        hydrated = self.options.model_copy(deep=True)
        if query_options is None:
            return hydrated

        if query_options.score_threshold != 0:
            hydrated.score_threshold = query_options.score_threshold
        if query_options.top != 0:
            hydrated.top = query_options.top
        if query_options.strict_filters:
            hydrated.strict_filters = list(query_options.strict_filters)

        hydrated.context = query_options.context
        hydrated.qna_id = query_options.qna_id
        hydrated.is_test = query_options.is_test
        hydrated.ranker_type = query_options.ranker_type or RankerTypes.DEFAULT.value
        hydrated.strict_filters_join_operator = query_options.strict_filters_join_operator
        return hydrated

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _query_service(self, question: str, options: QnAMakerOptions) -> QueryResults:
        url = f"{self.endpoint.host}/knowledgebases/{self.endpoint.knowledge_base_id}/generateanswer"
        body: dict[str, Any] = {
            "question": question,
            "top": options.top,
            "strictFilters": [f.to_dict() for f in options.strict_filters],
            "scoreThreshold": options.score_threshold,
            "context": options.context.to_dict() if options.context else None,
            "qnaId": options.qna_id,
            "isTest": options.is_test,
            "rankerType": options.ranker_type,
        }
        if options.strict_filters_join_operator:
            body["StrictFiltersCompoundOperationType"] = options.strict_filters_join_operator

        data = await self._post(url, body, "generateanswer", timeout=options.timeout / 1000)
        results = QueryResults.model_validate(data or {})

        for answer in results.answers:
            answer.score = answer.score / PERCENTAGE_DIVISOR
        results.answers = [answer for answer in results.answers if answer.score > options.score_threshold]
        return results

    async def _post(self, url: str, body: dict[str, Any], operation: str, timeout: float = 100) -> Any:
        headers = {
            "Authorization": f"EndpointKey {self.endpoint.endpoint_key}",
            "Ocp-Apim-Subscription-Key": self.endpoint.endpoint_key,
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=body, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException:
            record_qna_query("timeout", time.perf_counter() - start)
            raise QnAMakerError(f"QnA Maker {operation} timed out", retryable=True)
        except httpx.RequestError as err:
            record_qna_query("error", time.perf_counter() - start)
            raise QnAMakerError(f"QnA Maker {operation} failed: {err}", retryable=True) from err

        duration = time.perf_counter() - start
        if response.status_code in (401, 403):
            record_qna_query("unauthorized", duration)
            raise QnAAuthenticationError(response.status_code)

        if response.status_code >= 400:
            record_qna_query("error", duration)
            logger.error("QnA Maker %s failed with %s: %s", operation, response.status_code, response.text)
            raise QnAMakerError(
                f"QnA Maker {operation} failed: {response.text}",
                status_code=response.status_code,
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        record_qna_query("success", duration)
        if not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Trace and telemetry
    # -------------------------------------------------------------------------

    async def _emit_trace_info(
        self, context: TurnContext, answers: list[QueryResult], options: QnAMakerOptions
    ) -> None:
        trace_info = QnAMakerTraceInfo(
            message=context.activity,
            query_results=answers,
            knowledge_base_id=self.endpoint.knowledge_base_id,
            score_threshold=options.score_threshold,
            top=options.top,
            strict_filters=options.strict_filters,
            context=options.context,
            qna_id=options.qna_id,
            is_test=options.is_test,
            ranker_type=options.ranker_type,
        )
        await context.send_trace_activity(
            QNA_MAKER_NAME, trace_info.to_dict(), QNA_MAKER_TRACE_TYPE, QNA_MAKER_TRACE_LABEL
        )

    def on_qna_results(
        self,
        answers: list[QueryResult],
        context: TurnContext,
        telemetry_properties: dict[str, str] | None = None,
        telemetry_metrics: dict[str, float] | None = None,
    ) -> None:
        properties, metrics = self.fill_qna_event(answers, context, telemetry_properties, telemetry_metrics)
        self.telemetry_client.track_event(QnATelemetryConstants.QNA_MSG_EVENT, properties, metrics)

    def fill_qna_event(
        self,
        answers: list[QueryResult],
        context: TurnContext,
        telemetry_properties: dict[str, str] | None = None,
        telemetry_metrics: dict[str, float] | None = None,
    ) -> tuple[dict[str, str], dict[str, float]]:
        """Build the QnaMessage event. Caller-supplied values win over computed ones."""
        properties: dict[str, str] = {
            QnATelemetryConstants.KNOWLEDGE_BASE_ID_PROPERTY: self.endpoint.knowledge_base_id,
        }
        metrics: dict[str, float] = {}

        activity = context.activity
        if self.log_personal_information:
            if activity.text and activity.text.strip():
                properties[QnATelemetryConstants.QUESTION_PROPERTY] = activity.text
            user_name = activity.from_property.name if activity.from_property else None
            if user_name:
                properties[QnATelemetryConstants.USERNAME_PROPERTY] = user_name

        if answers:
            top = answers[0]
            properties[QnATelemetryConstants.MATCHED_QUESTION_PROPERTY] = json.dumps(top.questions)
            properties[QnATelemetryConstants.QUESTION_ID_PROPERTY] = str(top.id) if top.id is not None else ""
            properties[QnATelemetryConstants.ANSWER_PROPERTY] = top.answer
            properties[QnATelemetryConstants.ARTICLE_FOUND_PROPERTY] = "true"
            metrics[QnATelemetryConstants.SCORE_PROPERTY] = top.score
        else:
            properties[QnATelemetryConstants.MATCHED_QUESTION_PROPERTY] = "No Qna Question matched"
            properties[QnATelemetryConstants.QUESTION_ID_PROPERTY] = "No QnA Question Id matched"
            properties[QnATelemetryConstants.ANSWER_PROPERTY] = "No Qna Answer matched"
            properties[QnATelemetryConstants.ARTICLE_FOUND_PROPERTY] = "false"

        if telemetry_properties:
            properties = {**properties, **telemetry_properties}
        if telemetry_metrics:
            metrics = {**metrics, **telemetry_metrics}
        return properties, metrics
