"""QnA Maker request, response and options models."""

from enum import Enum
from typing import Any

from pydantic import Field

from palaver.models import Activity
from palaver.models.activity import SchemaModel


class RankerTypes(str, Enum):
    DEFAULT = "Default"
    QUESTION_ONLY = "QuestionOnly"
    AUTO_SUGGEST_QUESTION = "AutoSuggestQuestion"


class JoinOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class QnATelemetryConstants:
    QNA_MSG_EVENT = "QnaMessage"
    KNOWLEDGE_BASE_ID_PROPERTY = "knowledgeBaseId"
    ANSWER_PROPERTY = "answer"
    ARTICLE_FOUND_PROPERTY = "articleFound"
    CHANNEL_ID_PROPERTY = "channelId"
    CONVERSATION_ID_PROPERTY = "conversationId"
    QUESTION_PROPERTY = "question"
    MATCHED_QUESTION_PROPERTY = "matchedQuestion"
    QUESTION_ID_PROPERTY = "questionId"
    SCORE_PROPERTY = "score"
    USERNAME_PROPERTY = "username"


# =============================================================================
# Endpoint and options
# =============================================================================


class QnAMakerEndpoint(SchemaModel):
    knowledge_base_id: str = ""
    endpoint_key: str = ""
    host: str = ""


class Metadata(SchemaModel):
    name: str
    value: str


class QnARequestContext(SchemaModel):
    """Previous turn of a multi-turn conversation."""

    previous_qna_id: int = Field(default=0, alias="previousQnAId")
    previous_user_query: str | None = None


class QnAMakerOptions(SchemaModel):
    """Query options.

    Zero values for `score_threshold`, `top` and `timeout` mean "use the
    default" and are filled in when the options are validated.
    """

    score_threshold: float = 0.0
    timeout: float = 0.0
    top: int = 0
    strict_filters: list[Metadata] = Field(default_factory=list)
    metadata_boost: list[Metadata] = Field(default_factory=list)
    context: QnARequestContext | None = None
    qna_id: int = Field(default=0, alias="qnaId")
    is_test: bool = False
    ranker_type: str = RankerTypes.DEFAULT.value
    strict_filters_join_operator: JoinOperator | None = None


# =============================================================================
# Results
# =============================================================================


class QnAMakerPrompt(SchemaModel):
    display_order: int = 0
    qna_id: int = Field(default=0, alias="qnaId")
    display_text: str = ""
    qna: Any = None


class QnAResponseContext(SchemaModel):
    is_context_only: bool = False
    prompts: list[QnAMakerPrompt] = Field(default_factory=list)


class QueryResult(SchemaModel):
    questions: list[str] = Field(default_factory=list)
    answer: str = ""
    score: float = 0.0
    metadata: list[Metadata] = Field(default_factory=list)
    source: str | None = None
    id: int | None = None
    context: QnAResponseContext | None = None


class QueryResults(SchemaModel):
    answers: list[QueryResult] = Field(default_factory=list)
    active_learning_enabled: bool = False


class FeedbackRecord(SchemaModel):
    user_id: str | None = None
    user_question: str | None = None
    qna_id: int | None = Field(default=None, alias="qnaId")


class FeedbackRecords(SchemaModel):
    records: list[FeedbackRecord] = Field(default_factory=list, alias="feedbackRecords")


class QnAMakerTraceInfo(SchemaModel):
    """Payload of the trace activity sent after each query."""

    message: Activity | None = None
    query_results: list[QueryResult] = Field(default_factory=list)
    knowledge_base_id: str | None = None
    score_threshold: float = 0.0
    top: int = 0
    strict_filters: list[Metadata] = Field(default_factory=list)
    context: QnARequestContext | None = None
    qna_id: int = Field(default=0, alias="qnaId")
    is_test: bool = False
    ranker_type: str | None = None
