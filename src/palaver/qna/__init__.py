"""QnA Maker knowledge base client and dialog."""

from .active_learning import get_low_score_variation
from .card_builder import QnACardBuilder
from .dialog import QnADialogResponseOptions, QnAMakerDialog, QnAMakerDialogOptions
from .maker import (
    QNA_MAKER_TRACE_TYPE,
    QNA_MATCH_INTENT,
    QnAAuthenticationError,
    QnAMaker,
    QnAMakerError,
)
from .models import (
    FeedbackRecord,
    FeedbackRecords,
    JoinOperator,
    Metadata,
    QnAMakerEndpoint,
    QnAMakerOptions,
    QnAMakerPrompt,
    QnAMakerTraceInfo,
    QnARequestContext,
    QnAResponseContext,
    QnATelemetryConstants,
    QueryResult,
    QueryResults,
    RankerTypes,
)

__all__ = [
    # Models
    "FeedbackRecord",
    "FeedbackRecords",
    "JoinOperator",
    "Metadata",
    "QnAMakerEndpoint",
    "QnAMakerOptions",
    "QnAMakerPrompt",
    "QnAMakerTraceInfo",
    "QnARequestContext",
    "QnAResponseContext",
    "QnATelemetryConstants",
    "QueryResult",
    "QueryResults",
    "RankerTypes",
    # Client
    "QNA_MAKER_TRACE_TYPE",
    "QNA_MATCH_INTENT",
    "QnAAuthenticationError",
    "QnAMaker",
    "QnAMakerError",
    "get_low_score_variation",
    # Dialog
    "QnACardBuilder",
    "QnADialogResponseOptions",
    "QnAMakerDialog",
    "QnAMakerDialogOptions",
]
