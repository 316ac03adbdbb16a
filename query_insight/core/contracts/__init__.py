from query_insight.core.contracts.gateway import AskRequest, AskResponse
from query_insight.core.contracts.outcome import AnswerResult, HttpOutcome, ReadMethod, Status
from query_insight.core.contracts.payload import ChatMessage, RequestPayload

__all__ = [
    "AskRequest",
    "AskResponse",
    "AnswerResult",
    "HttpOutcome",
    "ReadMethod",
    "Status",
    "ChatMessage",
    "RequestPayload",
]
